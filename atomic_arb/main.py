"""
Main entry point for the atomic Solana arbitrage bot.
"""
import asyncio
import logging
import sys
from typing import Optional

from .arbitrage_loop import ArbitrageLoop
from .config import BotConfig
from .errors import ConfigError
from .jupiter_client import JupiterClient
from .notifier import TelegramNotifier
from .solana_client import SolanaClient
from .submitter import TransactionSubmitter
from .transaction_builder import TransactionAssembler
from .utils import get_terminal_colors
from .wallet import WalletHandle

colors = get_terminal_colors()
logger = logging.getLogger(__name__)


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = 'arbitrage_bot.log') -> None:
    """Configure root logging to stdout and (optionally) a log file."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )
    # httpx logs every request URL at INFO, and Telegram URLs carry the bot token
    logging.getLogger('httpx').setLevel(logging.WARNING)


def log_startup(config: BotConfig, mode: str) -> None:
    logger.info("Starting atomic arbitrage bot")
    logger.info(f"  Mode: {colors['CYAN']}{mode.upper()}{colors['RESET']}")
    logger.info(f"  Pair: {colors['CYAN']}{config.base_mint} -> {config.quote_mint}{colors['RESET']}")
    logger.info(f"  Input: {colors['GREEN']}{config.input_amount}{colors['RESET']}")
    logger.info(f"  Minimum profit: {colors['YELLOW']}{config.min_profit}{colors['RESET']}")
    logger.info(f"  Slippage: {colors['YELLOW']}{config.slippage_bps}{colors['RESET']} bps")
    logger.info(f"  Max ALTs: {colors['GREEN']}2{colors['RESET']}, atomic transactions only")


async def run_bot(
    config: BotConfig,
    mode: str,
    wallet: Optional[WalletHandle] = None,
    max_cycles: Optional[int] = None
) -> None:
    """Wire up clients for the given mode and run the opportunity loop."""
    user_pubkey = str(wallet.pubkey) if wallet else None

    jupiter = JupiterClient(
        config.jupiter_api_url,
        user_public_key=user_pubkey,
        slippage_bps=config.slippage_bps,
        compute_unit_price_micro_lamports=config.compute_unit_price_micro_lamports,
        max_retries=config.max_retries,
        backoff_seconds=config.retry_backoff_seconds
    )
    notifier = TelegramNotifier(config.telegram_bot_token, config.telegram_chat_id)
    solana = None

    try:
        assembler = None
        submitter = None
        if wallet is not None:
            solana = SolanaClient(config.rpc_url, fallback_rpc_url=config.fallback_rpc_url)
            assembler = TransactionAssembler(wallet.keypair)
            submitter = TransactionSubmitter(
                solana,
                max_retries=config.max_retries,
                backoff_seconds=config.retry_backoff_seconds
            )
            balance = await solana.get_balance(wallet.pubkey)
            logger.info(f"Wallet balance: {colors['GREEN']}{balance / 1e9:.4f}{colors['RESET']} SOL")

        loop = ArbitrageLoop(
            config,
            jupiter,
            solana_client=solana,
            assembler=assembler,
            submitter=submitter,
            notifier=notifier,
            mode=mode
        )

        if mode == 'live':
            logger.warning("=" * 60)
            logger.warning("LIVE MODE ENABLED - REAL TRANSACTIONS WILL BE SENT!")
            logger.warning("=" * 60)
        await loop.run_forever(max_cycles=max_cycles)
    finally:
        await notifier.close()
        await jupiter.close()
        if solana is not None:
            await solana.close()
        logger.info(f"{colors['DIM']}Bot stopped{colors['RESET']}")


async def main(mode: str = 'scan', max_cycles: Optional[int] = None) -> None:
    """Main function."""
    setup_logging()
    mode = mode.lower()

    try:
        config = BotConfig.load()
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return

    log_startup(config, mode)

    if mode == 'scan':
        await run_bot(config, mode, max_cycles=max_cycles)
        return

    try:
        wallet = WalletHandle.from_env().open()
    except ConfigError as e:
        logger.error(f"Wallet required for {mode} mode: {e}")
        return

    try:
        await run_bot(config, mode, wallet=wallet, max_cycles=max_cycles)
    finally:
        wallet.close()


if __name__ == '__main__':
    asyncio.run(main())
