#!/usr/bin/env python3
"""
Command Line Interface for Studio Calendars

Fetches the schedule with the chosen scraper and writes the calendar files.
"""

import argparse
import asyncio
import sys
from typing import Callable, Dict, Optional

from ..config import REFRESH_MODES, Settings
from ..errors import ScheduleError
from ..schedule.pipeline import RunSummary, SchedulePipeline
from .api import ScheduleApiScraper
from .base import BaseScraper
from .browser import BrowserScraper


# Registry of available scrapers
SCRAPERS: Dict[str, Callable[..., BaseScraper]] = {
    "api": lambda settings, headless: ScheduleApiScraper(settings),
    "browser": lambda settings, headless: BrowserScraper(settings, headless=headless),
}


async def run_pipeline(scraper_name: str, settings: Settings, headless: bool = True) -> RunSummary:
    """
    Run one schedule refresh.

    Args:
        scraper_name: Name of the scraper to fetch with
        settings: Run settings
        headless: Whether a browser scraper runs headless

    Returns:
        The run summary
    """
    scraper = SCRAPERS[scraper_name](settings, headless)
    try:
        return await SchedulePipeline(settings, scraper).run()
    finally:
        await scraper.close()


def run_scraper(scraper_name: str, settings: Settings, headless: bool = True) -> bool:
    """
    Run a scraper end to end and report the outcome.

    Returns:
        True if successful, False otherwise
    """
    if scraper_name not in SCRAPERS:
        print(f"❌ Unknown scraper: {scraper_name}")
        print(f"Available scrapers: {', '.join(SCRAPERS.keys())}")
        return False

    print(f"🚀 Starting {settings.venue_name} schedule refresh ({scraper_name}, {settings.mode})...")
    try:
        summary = asyncio.run(run_pipeline(scraper_name, settings, headless))
    except (ScheduleError, OSError, ValueError) as e:
        print(f"❌ {settings.venue_name} refresh failed: {e}", file=sys.stderr)
        return False

    summary.report()
    print(f"✅ {settings.venue_name} refresh completed")
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Studio schedule → calendar files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  studiocal                          # Full refresh from the schedule API
  studiocal --mode incremental       # Refresh spots/waitlists only
  studiocal browser --no-headless    # Sniff the booking page with a visible browser
        """
    )

    parser.add_argument(
        "scraper",
        nargs="?",
        default="api",
        choices=list(SCRAPERS.keys()),
        help="Name of the scraper to run (default: api)"
    )
    parser.add_argument("--mode", choices=REFRESH_MODES, help="Refresh mode (env: REFRESH_MODE)")
    parser.add_argument("--days", type=int, help="Days ahead to fetch (env: SCHEDULE_DAYS)")
    parser.add_argument("--days-back", type=int, help="Days before today to fetch (env: SCHEDULE_DAYS_BACK)")
    parser.add_argument("--location", help="Venue location id (env: STUDIO_LOCATION)")
    parser.add_argument("--timezone", help="Venue timezone (env: STUDIO_TIMEZONE)")
    parser.add_argument("--output-dir", help="Calendar output directory (env: OUTPUT_DIR)")
    parser.add_argument("--cache-file", help="Schedule snapshot path (env: CACHE_FILE)")
    parser.add_argument(
        "--no-headless",
        action="store_true",
        help="Run with visible browser (useful for debugging)"
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List all available scrapers"
    )
    return parser


def main(argv: Optional[list] = None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    if args.list:
        print("Available scrapers:")
        for name in SCRAPERS:
            print(f"  - {name}")
        return

    try:
        settings = Settings.from_env().with_overrides(
            mode=args.mode,
            days_forward=args.days,
            days_back=args.days_back,
            location_id=args.location,
            timezone=args.timezone,
            output_dir=args.output_dir,
            cache_file=args.cache_file,
        )
    except ValueError as e:
        print(f"❌ Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    success = run_scraper(args.scraper, settings, headless=not args.no_headless)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
