"""CLI entry point for the LinkedIn jobs scraper."""

import argparse
import asyncio
import json
import logging
import sys

from jobs_scraper.browser.session import resolve_session_cookie
from jobs_scraper.core.config import ScraperSettings, resolve_queries
from jobs_scraper.core.errors import QueryValidationError
from jobs_scraper.core.events import EventKind
from jobs_scraper.core.schemas import JobRecord, Metrics
from jobs_scraper.pipeline.orchestrator import LinkedInScraper
from jobs_scraper.platforms.linkedin.searcher import build_search_url


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="LinkedIn jobs scraper - run job searches and stream the results",
    )
    subparsers = parser.add_subparsers(dest="command")

    # --- search subcommand (default) ---
    search_parser = subparsers.add_parser("search", help="Run job searches")
    search_parser.add_argument(
        "--config",
        default="config/queries.yaml",
        help="Path to queries YAML file (default: config/queries.yaml)",
    )
    search_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show resolved queries and search URLs without launching a browser",
    )
    search_parser.add_argument(
        "--export",
        choices=["json"],
        help="Export results to format (json)",
    )
    search_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    # --- top-level flags for search ---
    parser.add_argument("--config", default="config/queries.yaml", help=argparse.SUPPRESS)
    parser.add_argument("--dry-run", action="store_true", help=argparse.SUPPRESS)
    parser.add_argument("--export", choices=["json"], help=argparse.SUPPRESS)
    parser.add_argument("--verbose", "-v", action="store_true", help=argparse.SUPPRESS)

    args = parser.parse_args(argv)

    # Default to search when no subcommand given
    if args.command is None:
        args.command = "search"

    return args


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def dry_run(settings: ScraperSettings) -> None:
    """Print what would be scraped without launching a browser."""
    queries = resolve_queries(settings.queries, settings.options)
    authenticated = bool(resolve_session_cookie(settings))
    mode = "authenticated" if authenticated else "anonymous"

    print(f"[DRY RUN] {len(queries)} queries configured, {mode} mode")

    for query in queries:
        options = query.options
        print(f"[DRY RUN] '{query.label}': limit {options.limit}, page offset {options.page_offset}")
        print(f"  Filters: {options.filters.model_dump(exclude_defaults=True)}")
        for location in options.locations:
            url = build_search_url(query.label, location, options, authenticated=authenticated)
            print(f"  [{location}] {url}")

    print("[DRY RUN] Would scrape 0 jobs (no browser in dry-run)")


def export_records_json(records: list[JobRecord]) -> str:
    """Export scraped records as a JSON string."""
    return json.dumps([r.model_dump() for r in records], indent=2)


async def run(settings: ScraperSettings, export_format: str | None) -> None:
    """Run every configured query with a real browser."""
    records: list[JobRecord] = []
    errors: list[str] = []

    def on_data(record: JobRecord) -> None:
        records.append(record)
        print(f"  [{record.query}][{record.location}] {record.title} @ {record.company} ({record.link})")

    def on_metrics(metrics: Metrics) -> None:
        print(
            f"  processed={metrics.processed} failed={metrics.failed} "
            f"missed={metrics.missed} skipped={metrics.skipped}"
        )

    def on_invalid_session() -> None:
        print("Error: the LinkedIn session cookie is invalid or expired", file=sys.stderr)

    scraper = LinkedInScraper(settings)
    scraper.on(EventKind.DATA, on_data)
    scraper.on(EventKind.ERROR, errors.append)
    scraper.on(EventKind.METRICS, on_metrics)
    scraper.on(EventKind.INVALID_SESSION, on_invalid_session)

    async with scraper:
        await scraper.run(settings.queries, settings.options)

    print(f"\nScrape complete: {len(records)} jobs, {len(errors)} errors.")

    if export_format == "json" and records:
        print(f"\n{export_records_json(records)}")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = ScraperSettings.from_yaml(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.dry_run:
            dry_run(settings)
        else:
            asyncio.run(run(settings, args.export))
    except QueryValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
