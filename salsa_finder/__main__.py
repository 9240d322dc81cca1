"""Command line interface for Salsa Finder."""

import argparse
import asyncio
import datetime as dt
import json
import logging
import os
import sys

import httpx
from dotenv import load_dotenv

from salsa_finder.database.connections import DatabaseManager
from salsa_finder.database.schema import initialize_schema
from salsa_finder.discovery.service import DiscoveryService
from salsa_finder.models.config import SalsaFinderConfig
from salsa_finder.voting import VoteService

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Set specific loggers to WARNING to reduce noise
logging.getLogger("openai").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


def _iso_date(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="salsa_finder",
        description="Salsa Finder - Latin dance event discovery",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create tables and indexes")

    discover = subparsers.add_parser("discover", help="Search, scrape and store events for a city")
    discover.add_argument("--city", required=True, help="City to search for events")
    discover.add_argument("--date", type=_iso_date, help="Target date (YYYY-MM-DD)")
    discover.add_argument("--weekday", help="German weekday name used in the search query")
    discover.add_argument(
        "--styles",
        default="",
        help="Comma separated preferred dance styles (default: Salsa)",
    )

    vote = subparsers.add_parser("vote", help="Cast, retract or switch a vote")
    vote.add_argument("--event-id", type=int, required=True, help="Event to vote on")
    vote.add_argument("--type", required=True, help="exists/notexists, or indoor/outdoor with --venue")
    vote.add_argument("--user-id", required=True, help="Voting user")
    vote.add_argument("--venue", action="store_true", help="Cast a venue-type vote")

    return parser


async def run_command(args: argparse.Namespace, config: SalsaFinderConfig) -> dict:
    """Execute one CLI command against an initialized database manager."""
    db_manager = DatabaseManager(config)
    await db_manager.initialize()

    try:
        if args.command == "init-db":
            await initialize_schema(db_manager)
            return {"status": "ok"}

        if args.command == "discover":
            styles = [style.strip() for style in args.styles.split(",") if style.strip()]
            async with httpx.AsyncClient(max_redirects=config.max_redirects) as http_client:
                service = DiscoveryService.from_config(config, db_manager, http_client)
                summary = await service.run_discovery(
                    args.city, date=args.date, weekday=args.weekday, styles=styles
                )
            return summary.model_dump(mode="json")

        vote_service = VoteService(db_manager)
        cast = vote_service.cast_venue_vote if args.venue else vote_service.cast_existence_vote
        counts = await cast(args.event_id, args.type, args.user_id)
        return counts.model_dump(by_alias=True)

    finally:
        await db_manager.cleanup()


async def main_async(argv=None):
    """Run the Salsa Finder CLI asynchronously."""
    args = build_parser().parse_args(argv)

    try:
        config = SalsaFinderConfig()

        if args.command == "discover" and not config.openai_api_key:
            logger.error("OPENAI_API_KEY environment variable is required")
            sys.exit(1)

        result = await run_command(args, config)
        print(json.dumps(result, indent=2, ensure_ascii=False))

    except Exception as e:
        logger.exception(f"Error running Salsa Finder: {e}")
        sys.exit(1)


def main():
    """Run the Salsa Finder CLI."""
    asyncio.run(main_async())


if __name__ == "__main__":
    main()
