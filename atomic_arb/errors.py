"""
Exception types raised by the arbitrage pipeline.

Every stage converts its exhausted or structural failures into one of these,
so the opportunity loop can record a failed cycle without knowing the cause.
"""


class ArbitrageError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(ArbitrageError):
    """Invalid or missing configuration at startup."""


class QuoteUnavailable(ArbitrageError):
    """Jupiter did not return a usable route after all retries."""


class InstructionBuildError(ArbitrageError):
    """Swap instructions could not be fetched or rebuilt after all retries."""


class NoViableTransaction(ArbitrageError):
    """Neither assembly strategy produced a transaction within the size limit."""


class SimulationFailed(ArbitrageError):
    """Simulation kept failing on every submission attempt."""


class SendFailed(ArbitrageError):
    """Broadcast kept failing on every submission attempt."""


class ConfirmationFailed(ArbitrageError):
    """Transaction was sent but could not be confirmed. Never resubmitted."""
