"""Application entry point."""

from __future__ import annotations

import argparse
import random
from typing import Optional

from config import Config, load_config
from core import get_logger, setup_logger
from database import init_db_pool, run_migrations
from ledger.chain import Chain
from services import (
    EventJournal,
    deploy_marketplace,
    export_addresses,
    run_coroutine_sync,
    start_background_loop,
)
from services.demo import run_demo_raffle, run_demo_yolo

logger = get_logger(__name__)


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Raffle marketplace on an in-memory chain")
    parser.add_argument("command", choices=("demo", "serve"), help="what to run")
    parser.add_argument("--seed", type=int, default=None, help="seed for the randomness provider")
    parser.add_argument("--export", action="store_true", help="write deployed addresses to JSON")
    return parser.parse_args(argv)


def _open_journal(config: Config, chain: Chain) -> EventJournal:
    start_background_loop()
    pool = run_coroutine_sync(
        init_db_pool(config.database_path, config.db_pool_size, config.db_busy_timeout)
    )
    run_coroutine_sync(run_migrations(pool))
    journal = EventJournal(pool)
    journal.attach(chain)
    return journal


def run(command: str, seed: Optional[int] = None, export: bool = False) -> None:
    config = load_config()
    setup_logger(
        name="",
        level=config.log_level,
        log_file=f"{config.log_folder}/app.log",
        colored=True,
    )
    rng = random.Random(seed) if seed is not None else None

    chain = Chain()
    journal = _open_journal(config, chain)
    deployer = chain.create_account("deployer", 10**21)
    market = deploy_marketplace(chain, config, deployer)
    if export:
        logger.info(f"Addresses written to {export_addresses(market, config)}")

    raffle = run_demo_raffle(market, rng=rng)
    yolo = run_demo_yolo(market, rng=rng)
    for finished in (raffle, yolo):
        run_coroutine_sync(journal.save_raffle_snapshot(finished.summary()))
    written = run_coroutine_sync(journal.flush())
    logger.info(f"Journaled {written} event(s) to {config.database_path}")

    if command == "serve":
        from web.app import create_app

        app = create_app(config, market, journal)
        logger.info(f"Serving read API on {config.web_host}:{config.web_port}")
        app.run(host=config.web_host, port=config.web_port, debug=config.debug, use_reloader=False)


if __name__ == "__main__":
    args = _parse_args()
    try:
        run(args.command, seed=args.seed, export=args.export)
    except KeyboardInterrupt:
        logger.info("Application stopped by user")
    except Exception as e:
        logger.error(f"Application failed: {e}", exc_info=True)
        raise SystemExit(1)
