"""
Scoped access to the signing keypair.
"""
import logging
import os
from typing import Optional

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .errors import ConfigError

logger = logging.getLogger(__name__)


class WalletHandle:
    """
    Holds the signing keypair only between ``open()`` and ``close()``.

    Usage:
        with WalletHandle.from_env() as wallet:
            assembler = TransactionAssembler(wallet.keypair)

    The private key is never logged, and ``repr`` shows the public key only.
    """

    def __init__(self, private_key_base58: str):
        if not private_key_base58:
            raise ConfigError("No wallet private key provided")
        self._private_key = private_key_base58
        self._keypair: Optional[Keypair] = None

    @classmethod
    def from_env(cls, env_var: str = 'WALLET_PRIVATE_KEY') -> 'WalletHandle':
        """Create a handle from a base58 private key in the environment."""
        return cls(os.getenv(env_var, ''))

    def open(self) -> 'WalletHandle':
        if self._keypair is None:
            if self._private_key is None:
                raise ConfigError("Wallet handle already released")
            try:
                self._keypair = Keypair.from_bytes(base58.b58decode(self._private_key))
            except Exception as e:
                # Decoder messages may echo key material
                raise ConfigError(f"Invalid wallet private key ({type(e).__name__})") from None
            logger.info(f"Wallet loaded: {self._keypair.pubkey()}")
        return self

    def close(self) -> None:
        """Release the keypair. The handle cannot be reopened."""
        self._keypair = None
        self._private_key = None

    @property
    def is_open(self) -> bool:
        return self._keypair is not None

    @property
    def keypair(self) -> Keypair:
        if self._keypair is None:
            raise ConfigError("Wallet handle is not open")
        return self._keypair

    @property
    def pubkey(self) -> Pubkey:
        return self.keypair.pubkey()

    def __enter__(self) -> 'WalletHandle':
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        if self._keypair is None:
            return "WalletHandle(closed)"
        return f"WalletHandle(pubkey={self._keypair.pubkey()})"
