#!/usr/bin/env python3
"""
Simple launcher script for the arbitrage bot.
"""
import argparse
import sys
from atomic_arb.main import main
import asyncio

if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Atomic Solana Arbitrage Bot')
    parser.add_argument(
        'mode',
        nargs='?',
        default='scan',
        choices=['scan', 'simulate', 'live'],
        help='Operation mode: scan (default), simulate, or live'
    )
    parser.add_argument(
        '--cycles',
        type=int,
        default=None,
        help='Stop after this many cycles (default: run until interrupted)'
    )

    args = parser.parse_args()

    try:
        asyncio.run(main(mode=args.mode, max_cycles=args.cycles))
    except KeyboardInterrupt:
        print("\nBot stopped by user")
        sys.exit(0)
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)
