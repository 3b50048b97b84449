"""Command-line entry point for cadence."""

from __future__ import annotations

import argparse
import logging
import sys

from .db import Database
from .paths import Paths
from .recurrence.expand import expand_dates
from .recurrence.rules import describe_rule, parse_rule
from .storage.recurrence import RecurrenceStore
from .storage.settings import Settings

log = logging.getLogger(__name__)


def _cmd_extend(args: argparse.Namespace, paths: Paths) -> int:
    db = Database(paths.db)
    db.connect()
    try:
        db.init_schema()
        store = RecurrenceStore(db, settings=Settings(paths))
        count = store.extend_all(args.months)
    finally:
        db.close()
    print(f"extended {count} series")
    return 0


def _cmd_describe(args: argparse.Namespace, paths: Paths) -> int:
    rule = parse_rule(args.rule)
    if rule is None:
        print(f"invalid rule: {args.rule}", file=sys.stderr)
        return 1
    print(describe_rule(rule))
    return 0


def _cmd_expand(args: argparse.Namespace, paths: Paths) -> int:
    rule = parse_rule(args.rule)
    if rule is None:
        print(f"invalid rule: {args.rule}", file=sys.stderr)
        return 1
    for day in expand_dates(args.start, rule, args.from_date, args.to_date):
        print(day.isoformat())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cadence", description="Recurring event engine")
    parser.add_argument(
        "--data-dir", default="data",
        help="Data directory (default: data)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    extend = sub.add_parser("extend", help="Extend every series' occurrence window")
    extend.add_argument(
        "--months", type=int, default=None,
        help="Window length in months (default: settings window_months)",
    )
    extend.set_defaults(func=_cmd_extend)

    describe = sub.add_parser("describe", help="Describe a rule in English")
    describe.add_argument("rule", help='Rule JSON, e.g. \'{"freq": "daily"}\'')
    describe.set_defaults(func=_cmd_describe)

    expand = sub.add_parser("expand", help="List the dates a rule produces")
    expand.add_argument("--start", required=True, help="Series start (ISO date or timestamp)")
    expand.add_argument("--rule", required=True, help="Rule JSON")
    expand.add_argument("--from", dest="from_date", required=True, help="First date (YYYY-MM-DD)")
    expand.add_argument("--to", dest="to_date", required=True, help="Last date (YYYY-MM-DD)")
    expand.set_defaults(func=_cmd_expand)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    paths = Paths(root=args.data_dir)
    log.debug("data directory %s", paths.root)
    return args.func(args, paths)


if __name__ == "__main__":
    sys.exit(main())
