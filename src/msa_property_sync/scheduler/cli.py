from __future__ import annotations

import argparse
from dataclasses import asdict
from typing import List, Optional

from ..logs import configure_logging
from ..markets.registry import MARKETS, canonicalize_city_code
from ..normalize import parse_date
from ..settings import get_settings
from ..storage import SQLiteStore
from .runner import dumps, run_daily_sync


def _parse_as_of(value: str):
    parsed = parse_date(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"invalid date: {value!r}")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="msa_property_sync")
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, etc.)")
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit logs as JSON lines on stderr",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_sync = sub.add_parser("sync", help="Sync one or all markets once")
    p_sync.add_argument("--db", default=None, help="SQLite DB path (default: MSA_SYNC_DB_PATH)")
    p_sync.add_argument(
        "--city",
        action="append",
        default=None,
        help="City code to sync (repeatable; default: all markets)",
    )
    p_sync.add_argument("--as-of", type=_parse_as_of, default=None, help="Sync through this date (default: today)")
    p_sync.add_argument(
        "--force",
        action="store_true",
        help="Run even when the market is already synced through --as-of",
    )
    p_sync.add_argument("--parallel", type=int, default=1, help="Markets to sync concurrently")

    sub.add_parser("markets", help="List configured markets")

    p_status = sub.add_parser("status", help="Show stored sync state per market")
    p_status.add_argument("--db", default=None, help="SQLite DB path (default: MSA_SYNC_DB_PATH)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, json_lines=bool(args.log_json))

    if args.cmd == "sync":
        city_codes = None
        if args.city:
            city_codes = [canonicalize_city_code(c) for c in args.city if c.strip()]
        try:
            res = run_daily_sync(
                db_path=args.db,
                city_codes=city_codes or None,
                as_of=args.as_of,
                force=bool(args.force),
                max_concurrent_markets=int(args.parallel or 1),
            )
        except KeyError as e:
            res = {"ok": False, "error": str(e.args[0]) if e.args else str(e)}
        print(dumps(res), end="")
        return 0 if res.get("ok") else 2

    if args.cmd == "markets":
        res = {
            "ok": True,
            "markets": [
                {
                    "city_code": m.city_code,
                    "msa": m.msa,
                    "exclusions": sorted(m.exclusions),
                }
                for m in MARKETS
            ],
        }
        print(dumps(res), end="")
        return 0

    if args.cmd == "status":
        store = SQLiteStore(args.db or get_settings().db_path)
        try:
            states = [asdict(s) for s in store.list_sync_states()]
        finally:
            store.close()
        print(dumps({"ok": True, "states": states}), end="")
        return 0

    return 2
