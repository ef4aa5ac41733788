from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from .config import load_config
from .raffle_client import RaffleClient
from .scheduler import UpkeepScheduler


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


async def run(args: argparse.Namespace) -> Optional[int]:
    settings = load_config(args.env_file)
    configure_logging(args.verbose)
    logger = logging.getLogger("raffle.keeper")

    client = RaffleClient(settings)
    scheduler = UpkeepScheduler(settings, client, logger=logger)

    if args.once or settings.run_once:
        result = await scheduler.run_once()
        if result:
            logger.info("Keeper closed round=%s request=%s", result.round_number, result.request_id)
            return result.request_id
        return None

    await scheduler.run_forever()
    return None


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Raffle upkeep keeper")
    parser.add_argument("--env-file", type=str, default=None, help="Path to .env file")
    parser.add_argument("--once", action="store_true", help="Run only once and exit.")
    parser.add_argument(
        "--verbose", action="store_true", help="Enable debug logging (default INFO)."
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        print("Keeper stopped by user.")


if __name__ == "__main__":
    main()
