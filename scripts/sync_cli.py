#!/usr/bin/env python
"""
Federation Sync CLI

Runs the federation synchronisation outside of the API, e.g. from a cron job.

Usage:
    python scripts/sync_cli.py <target> [options]

Targets:
    players    Pull the club licensees and their details
    matches    Pull teams and matches, then rebuild the burn state
    all        Players first, then matches

Options:
    --prod     Use production database (DB_URL_PROD)

Examples:
    python scripts/sync_cli.py all --prod
    python scripts/sync_cli.py matches
"""

import sys
from pathlib import Path

# Add parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse
import asyncio
import os

import certifi
from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient

from config import settings
from logging_config import logger
from models.sync import SyncResult
from services.federation_client import FederationClient
from services.match_sync_service import MatchSyncService
from services.player_sync_service import PlayerSyncService

load_dotenv()

TARGETS = ["players", "matches", "all"]


def setup_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Federation sync CLI for SQY Ping",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("target", choices=TARGETS, help="What to synchronise")
    parser.add_argument("--prod", action="store_true", help="Use production database")
    return parser


def log_result(label: str, result: SyncResult) -> None:
    if result.success:
        logger.info(
            f"✓ {label} sync completed: {result.processed} processed, "
            f"{result.written} written, {result.skipped} skipped"
        )
        if result.failedTeams:
            logger.warning(f"Teams that could not be fetched: {', '.join(result.failedTeams)}")
    else:
        logger.error(f"✗ {label} sync failed: {result.error}")


async def run(target: str, db_url: str, db_name: str) -> bool:
    client = AsyncIOMotorClient(db_url, tlsCAFile=certifi.where())
    db = client[db_name]
    ok = True
    try:
        async with FederationClient() as source:
            if target in ("players", "all"):
                result = await PlayerSyncService(db, source).sync_players()
                log_result("Players", result)
                ok = ok and result.success
            if target in ("matches", "all"):
                result = await MatchSyncService(db, source).sync_matches()
                log_result("Matches", result)
                ok = ok and result.success
    finally:
        client.close()
    return ok


def main() -> None:
    args = setup_parser().parse_args()
    if args.prod:
        db_url = os.environ["DB_URL_PROD"]
        db_name = "sqyping"
    else:
        db_url = settings.DB_URL
        db_name = settings.DB_NAME

    logger.info("=== SQY Ping Sync CLI ===")
    logger.info(f"Target: {args.target}")
    logger.info(f"Environment: {'PRODUCTION' if args.prod else 'DEVELOPMENT'} ({db_name})")

    try:
        ok = asyncio.run(run(args.target, db_url, db_name))
    except KeyboardInterrupt:
        logger.warning("Sync interrupted by user")
        sys.exit(130)
    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
