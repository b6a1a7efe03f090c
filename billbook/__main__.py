"""
Command line entry point.

    python -m billbook init-db [--db PATH]
    python -m billbook audit
    python -m billbook suggest-number sale|purchase
"""
from __future__ import annotations

import argparse
import sys

from .config import DB_PATH
from .constants import APP_NAME, NUMBER_SCOPES
from .database import get_connection
from .utils.helpers import fmt_money, fmt_quantity
from .utils.loggers import get_logger


def _cmd_init_db(conn, args) -> int:
    print(f"Database ready at {args.db}")
    return 0


def _cmd_audit(conn, args) -> int:
    from .modules.inventory.stock import StockTracker
    from .modules.party.ledger import PartyLedger

    drift = PartyLedger(conn).audit()
    if drift:
        print("Ledger drift:")
        for d in drift:
            print(
                f"  {d.name} ({d.phone_number}): stored {fmt_money(d.stored)}, "
                f"transactions {fmt_money(d.expected)}, difference {fmt_money(d.difference)}"
            )
    else:
        print("Ledger: all party balances match their transactions.")

    print("Stock movement (bags):")
    for m in StockTracker(conn).movements():
        print(
            f"  {m.product_name}: current {fmt_quantity(m.current)}, "
            f"documents {fmt_quantity(m.net_movement)}, implied start {fmt_quantity(m.implied_initial)}"
        )
    return 1 if drift else 0


def _cmd_suggest_number(conn, args) -> int:
    from .modules.numbering.authority import NumberingAuthority

    print(NumberingAuthority(conn).suggest_next(args.scope))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="billbook", description=f"{APP_NAME} maintenance commands")
    parser.add_argument("--db", default=str(DB_PATH), help="SQLite database file")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init-db", help="Create/upgrade the schema and seed defaults")
    p.add_argument("--db", default=argparse.SUPPRESS, help="SQLite database file")
    p.set_defaults(func=_cmd_init_db)

    p = sub.add_parser("audit", help="Compare balances and stock with stored transactions")
    p.add_argument("--db", default=argparse.SUPPRESS, help="SQLite database file")
    p.set_defaults(func=_cmd_audit)

    p = sub.add_parser("suggest-number", help="Print the next suggested invoice/bill number")
    p.add_argument("--db", default=argparse.SUPPRESS, help="SQLite database file")
    p.add_argument("scope", choices=NUMBER_SCOPES)
    p.set_defaults(func=_cmd_suggest_number)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    log = get_logger()
    conn = get_connection(args.db)
    try:
        return args.func(conn, args)
    except Exception:
        log.exception("Command %s failed", args.command)
        return 2
    finally:
        conn.close()


if __name__ == "__main__":
    sys.exit(main())
