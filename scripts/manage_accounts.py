"""CLI for gateway account management.

Usage::

    python -m scripts.manage_accounts <command> [options]

Commands:
    create-account   Create an INTERNAL (or --admin) account and print its key
    list-accounts    List all accounts with today's usage
    set-limit        Change an account's daily limit by key prefix
    reset-usage      Zero an account's usage for today
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable
from datetime import date

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from wpp_gateway.auth.keys import generate_api_key
from wpp_gateway.clock import make_clock
from wpp_gateway.config import settings
from wpp_gateway.models.account import SourceKind
from wpp_gateway.storage.orm import AccountRecord


def get_sync_session() -> Session:
    """Create sync session for CLI operations.

    Uses the same database URL as the async app (psycopg v3
    handles both sync and async natively).
    """
    engine = create_engine(settings.database_url)
    return Session(engine)


def _today() -> date:
    return make_clock(settings.quota_timezone)()


def _find_by_prefix(session: Session, prefix: str) -> AccountRecord:
    account = session.execute(
        select(AccountRecord).where(AccountRecord.key_prefix == prefix)
    ).scalar_one_or_none()
    if account is None:
        print(f"Account not found: {prefix}", file=sys.stderr)
        sys.exit(1)
    return account


def create_account(args: argparse.Namespace) -> None:
    """Create an account and print its one-time API key."""
    kind = SourceKind.ADMIN if args.admin else SourceKind.INTERNAL
    full_key, key_hash, key_prefix = generate_api_key()

    with get_sync_session() as session:
        account = AccountRecord(
            account_key=key_hash,
            key_prefix=key_prefix,
            name=args.name,
            source_kind=kind,
            daily_limit=args.limit,
            daily_usage=0,
        )
        session.add(account)
        session.commit()

    limit = "unlimited" if args.limit is None else f"{args.limit}/day"
    print(f'Account created: "{args.name}" ({kind})')
    print(f"   Key:     {full_key}")
    print(f"   Prefix:  {key_prefix}")
    print(f"   Limit:   {limit}")
    print()
    print("Save this key now -- it cannot be retrieved later!")


def list_accounts(_args: argparse.Namespace) -> None:
    """List all accounts with today's usage."""
    today = _today()
    with get_sync_session() as session:
        accounts = (
            session.execute(select(AccountRecord).order_by(AccountRecord.name))
            .scalars()
            .all()
        )

        if not accounts:
            print("No accounts found.")
            return

        print(f"Accounts (usage for {today.isoformat()}):")
        for i, account in enumerate(accounts, 1):
            used = account.to_domain().usage_on(today)
            limit = "unlimited" if account.daily_limit is None else account.daily_limit
            print(
                f"  {i}. {account.key_prefix} {account.name} "
                f"[{account.source_kind}] {used}/{limit}"
            )


def set_limit(args: argparse.Namespace) -> None:
    """Change an account's daily limit."""
    if args.unlimited == (args.limit is not None):
        print("Pass exactly one of --limit or --unlimited", file=sys.stderr)
        sys.exit(2)

    with get_sync_session() as session:
        account = _find_by_prefix(session, args.prefix)
        account.daily_limit = None if args.unlimited else args.limit
        session.commit()
        shown = "unlimited" if account.daily_limit is None else account.daily_limit
        print(f"Daily limit for {args.prefix} set to {shown}")


def reset_usage(args: argparse.Namespace) -> None:
    """Zero today's usage for an account."""
    with get_sync_session() as session:
        account = _find_by_prefix(session, args.prefix)
        account.daily_usage = 0
        account.usage_reset_date = _today()
        session.commit()
        print(f"Usage reset for {args.prefix}")


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and dispatch to command handler."""
    parser = argparse.ArgumentParser(description="Gateway account management CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    # create-account
    p = sub.add_parser("create-account", help="Create an account and print its key")
    p.add_argument("--name", required=True, help="Account name")
    p.add_argument("--limit", type=int, default=None, help="Daily send limit")
    p.add_argument("--admin", action="store_true", help="Create an ADMIN account")

    # list-accounts
    sub.add_parser("list-accounts", help="List all accounts")

    # set-limit
    p = sub.add_parser("set-limit", help="Change an account's daily limit")
    p.add_argument("--prefix", required=True, help="Key prefix")
    p.add_argument("--limit", type=int, default=None, help="New daily limit")
    p.add_argument("--unlimited", action="store_true", help="Remove the limit")

    # reset-usage
    p = sub.add_parser("reset-usage", help="Zero today's usage")
    p.add_argument("--prefix", required=True, help="Key prefix")

    args = parser.parse_args(argv)
    commands: dict[str, Callable[[argparse.Namespace], None]] = {
        "create-account": create_account,
        "list-accounts": list_accounts,
        "set-limit": set_limit,
        "reset-usage": reset_usage,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
