"""
Configuration loading from .env and config.json.
"""
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent

SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


@dataclass
class BotConfig:
    """Runtime configuration. Holds no credentials (see WalletHandle)."""
    rpc_url: str = "https://api.mainnet-beta.solana.com"
    fallback_rpc_url: Optional[str] = None
    jupiter_api_url: str = "https://quote-api.jup.ag/v6"

    base_mint: str = USDC_MINT  # asset A: input and output of the round trip
    quote_mint: str = SOL_MINT  # asset B
    input_amount: int = 10_000_000  # 10 USDC
    min_profit: int = 1200  # 0.0012 USDC
    slippage_bps: int = 1
    compute_unit_price_micro_lamports: int = 1000
    fee_estimate_sol: float = 0.000005  # reported in alerts only, not computed
    max_retries: int = 3
    retry_backoff_seconds: float = 1.0

    cycle_delay_seconds: float = 5.0
    max_consecutive_failures: int = 5
    cooldown_seconds: float = 30.0

    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None

    def __repr__(self) -> str:
        # Never print the bot token
        token = "***" if self.telegram_bot_token else None
        return (
            f"BotConfig(base_mint={self.base_mint!r}, quote_mint={self.quote_mint!r}, "
            f"input_amount={self.input_amount}, min_profit={self.min_profit}, "
            f"slippage_bps={self.slippage_bps}, max_retries={self.max_retries}, "
            f"telegram_bot_token={token!r})"
        )

    def validate(self) -> None:
        """
        Raises:
            ConfigError: If any value is out of range
        """
        if self.input_amount <= 0:
            raise ConfigError(f"INPUT_AMOUNT must be positive, got {self.input_amount}")
        if self.min_profit < 0:
            raise ConfigError(f"MIN_PROFIT must be >= 0, got {self.min_profit}")
        if self.max_retries < 1:
            raise ConfigError(f"MAX_RETRIES must be >= 1, got {self.max_retries}")
        if self.slippage_bps < 0:
            raise ConfigError(f"SLIPPAGE_BPS must be >= 0, got {self.slippage_bps}")
        if self.base_mint == self.quote_mint:
            raise ConfigError("BASE_MINT and QUOTE_MINT must differ")
        if self.max_consecutive_failures < 1:
            raise ConfigError(
                f"MAX_CONSECUTIVE_FAILURES must be >= 1, got {self.max_consecutive_failures}"
            )

    @classmethod
    def load(
        cls,
        env_path: Optional[Path] = None,
        config_path: Optional[Path] = None
    ) -> 'BotConfig':
        """
        Load configuration. Environment variables override config.json,
        which overrides defaults.

        Raises:
            ConfigError: If a value cannot be parsed or fails validation
        """
        env_path = env_path or PROJECT_ROOT / '.env'
        if env_path.exists():
            dotenv.load_dotenv(env_path)
        else:
            logger.warning(f".env file not found at {env_path}")

        file_config = load_config_file(config_path or PROJECT_ROOT / 'config.json')
        arbitrage = file_config.get('arbitrage', {})
        loop = file_config.get('loop', {})
        defaults = cls()

        def setting(env_name: str, section: Dict[str, Any], key: str, cast: Callable, default: Any):
            raw = os.getenv(env_name)
            if raw is None or not raw.strip():
                raw = section.get(key, default)
            if raw is None:
                return None
            try:
                return cast(raw)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid value for {env_name}: {raw!r} ({e})") from e

        config = cls(
            rpc_url=setting('RPC_URL', {}, 'rpc_url', str, defaults.rpc_url),
            fallback_rpc_url=setting('FALLBACK_RPC_URL', {}, 'fallback_rpc_url', str, None),
            jupiter_api_url=setting('JUPITER_API_URL', {}, 'jupiter_api_url', str, defaults.jupiter_api_url),
            base_mint=setting('BASE_MINT', arbitrage, 'base_mint', str, defaults.base_mint),
            quote_mint=setting('QUOTE_MINT', arbitrage, 'quote_mint', str, defaults.quote_mint),
            input_amount=setting('INPUT_AMOUNT', arbitrage, 'input_amount', int, defaults.input_amount),
            min_profit=setting('MIN_PROFIT', arbitrage, 'min_profit', int, defaults.min_profit),
            slippage_bps=setting('SLIPPAGE_BPS', arbitrage, 'slippage_bps', int, defaults.slippage_bps),
            compute_unit_price_micro_lamports=setting(
                'COMPUTE_UNIT_PRICE_MICRO_LAMPORTS', arbitrage, 'compute_unit_price_micro_lamports',
                int, defaults.compute_unit_price_micro_lamports
            ),
            fee_estimate_sol=setting(
                'FEE_ESTIMATE_SOL', arbitrage, 'fee_estimate_sol', float, defaults.fee_estimate_sol
            ),
            max_retries=setting('MAX_RETRIES', arbitrage, 'max_retries', int, defaults.max_retries),
            cycle_delay_seconds=setting(
                'CYCLE_DELAY_SECONDS', loop, 'cycle_delay_seconds', float, defaults.cycle_delay_seconds
            ),
            max_consecutive_failures=setting(
                'MAX_CONSECUTIVE_FAILURES', loop, 'max_consecutive_failures',
                int, defaults.max_consecutive_failures
            ),
            cooldown_seconds=setting(
                'COOLDOWN_SECONDS', loop, 'cooldown_seconds', float, defaults.cooldown_seconds
            ),
            telegram_bot_token=os.getenv('TELEGRAM_BOT_TOKEN') or None,
            telegram_chat_id=os.getenv('TELEGRAM_CHAT_ID') or None
        )
        config.validate()
        return config


def load_config_file(config_path: Path) -> Dict[str, Any]:
    """Load config.json, returning {} when it does not exist."""
    if not config_path.exists():
        logger.debug(f"config.json not found at {config_path}")
        return {}
    try:
        with open(config_path, 'r') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {config_path}: {e}") from e
