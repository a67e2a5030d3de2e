"""CLI entry point for the flight browser pipeline."""

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

from src.core.config import Settings
from src.core.db import init_db
from src.core.schemas import (
    FlightRecord,
    SearchAlgorithm,
    SearchField,
    SortAlgorithm,
    SortKey,
    SortOrder,
)
from src.criteria.parser import get_criteria_parser
from src.pipeline.view_model import FlightsViewModel
from src.store.gateway import SqliteRecordStore

DEFAULT_CONFIG = "config/settings.yaml"


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG,
        help=f"Path to settings YAML file (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--db",
        help="Override the database path from settings",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Maximum rows to print (default: 20)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Flight browser - page, filter, sort and search a flight dataset",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- browse subcommand ---
    browse_parser = subparsers.add_parser("browse", help="Filter and sort loaded flights")
    _add_common(browse_parser)
    browse_parser.add_argument("--all", action="store_true", help="Load every page first")
    browse_parser.add_argument("--query", default="", help="Free-text query")
    browse_parser.add_argument("--origin", default="", help="Origin codes (JFK,ORD) or substring")
    browse_parser.add_argument("--destination", default="", help="Destination codes or substring")
    browse_parser.add_argument("--min-price", type=float, help="Minimum economy price")
    browse_parser.add_argument("--max-price", type=float, help="Maximum economy price")
    browse_parser.add_argument("--date-start", type=date.fromisoformat, help="First date (yyyy-mm-dd)")
    browse_parser.add_argument("--date-end", type=date.fromisoformat, help="Last date (yyyy-mm-dd)")
    browse_parser.add_argument(
        "--sort-key", choices=[k.value for k in SortKey], help="Sort key",
    )
    browse_parser.add_argument(
        "--order", choices=[o.value for o in SortOrder], help="Sort order",
    )
    browse_parser.add_argument(
        "--algorithm", choices=[a.value for a in SortAlgorithm], help="Sort algorithm",
    )

    # --- search subcommand ---
    search_parser = subparsers.add_parser("search", help="Run a keyed search over all flights")
    _add_common(search_parser)
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument(
        "--field",
        default=SearchField.ORIGIN.value,
        choices=[f.value for f in SearchField],
        help="Field to search (default: origin)",
    )
    search_parser.add_argument(
        "--algorithm",
        default=SearchAlgorithm.LINEAR.value,
        choices=[a.value for a in SearchAlgorithm],
        help="Search algorithm (default: linear)",
    )
    search_parser.add_argument(
        "--benchmark",
        action="store_true",
        help="Run every search algorithm and compare",
    )

    # --- ask subcommand ---
    ask_parser = subparsers.add_parser("ask", help="Filter flights with a natural-language request")
    _add_common(ask_parser)
    ask_parser.add_argument("text", help='e.g. "cheapest flights from JFK to LAX under 300"')

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(args: argparse.Namespace) -> Settings:
    """Load settings, falling back to defaults when the default path is absent."""
    if args.config == DEFAULT_CONFIG and not Path(DEFAULT_CONFIG).exists():
        settings = Settings()
    else:
        settings = Settings.from_yaml(args.config)
    if args.db:
        settings = settings.model_copy(
            update={"database": settings.database.model_copy(update={"path": args.db})},
        )
    return settings


def _print_rows(rows: tuple[FlightRecord, ...], limit: int) -> None:
    for f in rows[:limit]:
        print(
            f"  {f.airline} {f.id}: {f.origin} → {f.destination}  "
            f"{f.depdate}  {f.price_eco:.2f}  ({f.duration:g})"
        )
    if len(rows) > limit:
        print(f"  ... {len(rows) - limit} more")


async def run_browse(settings: Settings, args: argparse.Namespace) -> None:
    conn = init_db(settings.database.path)
    vm = FlightsViewModel(SqliteRecordStore(conn), settings)
    try:
        await vm.load()
        if args.all:
            await vm.load_everything()

        if args.sort_key:
            vm.set_sort_key(args.sort_key)
        if args.order:
            vm.set_sort_order(args.order)
        if args.algorithm:
            vm.set_sort_algorithm(args.algorithm)
        if args.origin:
            vm.set_origin_filter(args.origin)
        if args.destination:
            vm.set_destination_filter(args.destination)
        if args.min_price is not None:
            vm.set_min_price(args.min_price)
        if args.max_price is not None:
            vm.set_max_price(args.max_price)
        if args.date_start:
            vm.set_date_start(args.date_start)
        if args.date_end:
            vm.set_date_end(args.date_end)
        if args.query:
            vm.set_search_text(args.query)
        await vm.wait_idle()

        rows = vm.flights.value
        print(f"\n{len(rows)} visible of {len(vm.all_records)} loaded flights")
        _print_rows(rows, args.limit)
        for r in vm.run_history.value:
            print(
                f"run{r.id}: key={r.sort_key.value}, order={r.sort_order.value}, "
                f"algo={r.algorithm.value}, time={r.duration_seconds:.5f}s"
            )
    finally:
        await vm.aclose()
        conn.close()


async def run_search(settings: Settings, args: argparse.Namespace) -> None:
    conn = init_db(settings.database.path)
    vm = FlightsViewModel(SqliteRecordStore(conn), settings)
    try:
        await vm.load()
        await vm.load_everything()
        await vm.wait_idle()
        vm.set_search_field(args.field)

        if args.benchmark:
            counts = await vm.run_all_search_benchmarks(args.query)
            print(f"\nBenchmark for '{args.query}' on {args.field}:")
            for algorithm, count in counts.items():
                print(f"  {algorithm.value}: {count} matches")
        else:
            vm.set_search_algorithm(args.algorithm)
            matches = await vm.execute_search(args.query)
            print(f"\n{len(matches)} matches for '{args.query}' on {args.field}")
            _print_rows(matches, args.limit)

        for r in vm.search_run_history.value:
            print(
                f"run{r.id}: key={r.field.value}, algo={r.algorithm.value}, "
                f"query={r.query}, matches={r.matches}, time={r.duration_seconds:.5f}s"
            )
    finally:
        await vm.aclose()
        conn.close()


async def run_ask(settings: Settings, args: argparse.Namespace) -> int:
    conn = init_db(settings.database.path)
    parser = get_criteria_parser(settings.criteria_parser)
    vm = FlightsViewModel(SqliteRecordStore(conn), settings, criteria_parser=parser)
    try:
        await vm.load()
        await vm.wait_idle()
        if not await vm.apply_natural_query(args.text):
            print(f"Error: {vm.criteria_error.value}", file=sys.stderr)
            return 1
        await vm.wait_idle()

        c = vm.criteria
        print(
            f"\nCriteria: origin={c.origin_filter or '-'} destination={c.destination_filter or '-'} "
            f"price=[{c.min_price}, {c.max_price}] dates=[{c.date_start}, {c.date_end}] "
            f"sort={c.sort_key.value}/{c.sort_order.value}"
        )
        rows = vm.flights.value
        print(f"{len(rows)} visible of {len(vm.all_records)} loaded flights")
        _print_rows(rows, args.limit)
        return 0
    finally:
        await vm.aclose()
        conn.close()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "browse":
        asyncio.run(run_browse(settings, args))
    elif args.command == "search":
        asyncio.run(run_search(settings, args))
    elif args.command == "ask":
        try:
            code = asyncio.run(run_ask(settings, args))
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        sys.exit(code)


if __name__ == "__main__":
    main()
