#!/usr/bin/env python3
"""
Developer Tracker - Main Application Entry Point.

============================================================
SINGLE ENTRYPOINT
============================================================
One executable for every runtime mode.

    ingest      Run event sources and the pipeline
    api         Serve the developer read API only
    full        Ingestion and the read API in one process
    backfill    Replay a restartable source's history, then exit
    rescore     Recompute stats, reputation and risk for everyone
    mark-token  Manually set a token's terminal status

============================================================
USAGE
============================================================
    python app.py --mode full
    python app.py --mode backfill --source moralis --pages 5
    python app.py --mode mark-token --token <mint> --status rugged

Environment-based configuration (.env is loaded):
    DATABASE_URL, MORALIS_API_KEY, HELIUS_API_KEY,
    TWITTER_BEARER_TOKEN, TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID,
    DEVTRACKER_*

============================================================
"""

import argparse
import asyncio
import logging
import os
import sys

import uvicorn

from api import create_app
from api.config import ApiConfig
from data_ingestion import IngestionError, IngestionService
from developer_tracking import DeveloperTrackingError, TokenStatus
from storage.database import initialize_database
from storage.repositories import RepositoryException


MODES = ("ingest", "api", "full", "backfill", "rescore", "mark-token")

logger = logging.getLogger("app")


# ============================================================
# LOGGING
# ============================================================

def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ============================================================
# CLI
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="devtracker",
        description="Token-launch developer reputation tracker",
    )
    parser.add_argument(
        "--mode", "-m",
        choices=MODES,
        default=os.environ.get("RUNTIME_MODE", "full"),
        help="Runtime mode (default: full)",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        help="Log level (default: INFO)",
    )

    backfill_group = parser.add_argument_group("Backfill Options")
    backfill_group.add_argument("--source", help="Source to backfill (moralis, helius)")
    backfill_group.add_argument("--pages", type=int, default=None, help="Maximum pages to fetch")

    triage_group = parser.add_argument_group("Token Triage Options")
    triage_group.add_argument("--token", help="Token address for mark-token")
    triage_group.add_argument(
        "--status",
        choices=[s.value for s in TokenStatus if s is not TokenStatus.ACTIVE],
        help="Terminal status for mark-token",
    )
    return parser


def validate_args(args: argparse.Namespace) -> list[str]:
    errors = []
    if args.mode == "backfill" and not args.source:
        errors.append("--source is required for backfill mode")
    if args.mode == "mark-token" and not (args.token and args.status):
        errors.append("--token and --status are required for mark-token mode")
    if args.pages is not None and args.pages < 1:
        errors.append("--pages must be positive")
    return errors


# ============================================================
# MODES
# ============================================================

async def run_ingest(service: IngestionService) -> int:
    await service.start()
    try:
        logger.info("Ingesting (press Ctrl+C to stop)...")
        await service.wait()
        logger.warning("All sources have stopped")
        return 1
    finally:
        await service.stop()


async def run_full(service: IngestionService, api_config: ApiConfig) -> int:
    app = create_app(ingestion=service)
    server = uvicorn.Server(uvicorn.Config(
        app,
        host=api_config.host,
        port=api_config.port,
        log_level=api_config.log_level,
    ))

    await service.start()
    try:
        await server.serve()
        return 0
    finally:
        await service.stop()


async def run_backfill(service: IngestionService, source: str, pages) -> int:
    await service.start_notifications()
    try:
        stats = await service.backfill(source, pages)
    finally:
        await service.stop_notifications()
    print(f"Backfill {source}: {stats.to_dict()}")
    return 0 if stats.failed == 0 else 1


async def run_mark_token(service: IngestionService, token: str, status: str) -> int:
    await service.start_notifications()
    try:
        change = await service.update_token_status(token, TokenStatus(status))
    finally:
        await service.stop_notifications()
    print(
        f"Token {token}: {change.previous_status.value} -> {change.token.status.value}; "
        f"developer {change.token.developer_id} reputation={change.aggregation.stats.reputation_score} "
        f"risk={change.aggregation.risk.risk_score}"
    )
    return 0


async def run_application(args: argparse.Namespace) -> int:
    session_factory = initialize_database()
    service = IngestionService.from_config(session_factory)

    try:
        if args.mode == "ingest":
            return await run_ingest(service)
        if args.mode == "full":
            return await run_full(service, ApiConfig.from_env())
        if args.mode == "backfill":
            return await run_backfill(service, args.source, args.pages)
        if args.mode == "rescore":
            count = await service.rescore()
            print(f"Rescored {count} developers")
            return 0
        if args.mode == "mark-token":
            return await run_mark_token(service, args.token, args.status)
    except (KeyError, ValueError, DeveloperTrackingError) as e:
        logger.error(f"{args.mode} failed: {e}")
        return 1
    except IngestionError as e:
        logger.error(f"{args.mode} failed: {e.message}")
        return 1
    except RepositoryException as e:
        logger.error(f"Record store error: {e.message}", exc_info=True)
        return 1
    return 1


def run_api() -> int:
    api_config = ApiConfig.from_env()
    app = create_app(session_factory=initialize_database())
    uvicorn.run(
        app,
        host=api_config.host,
        port=api_config.port,
        log_level=api_config.log_level,
        access_log=True,
    )
    return 0


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    errors = validate_args(args)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    setup_logging(args.log_level)

    if args.mode == "api":
        return run_api()

    try:
        return asyncio.run(run_application(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
