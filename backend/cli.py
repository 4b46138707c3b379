"""
Maintenance CLI

Usage:
    medhome-maintenance check-db
    medhome-maintenance init-db
    medhome-maintenance inspect
    medhome-maintenance repair [--dry-run]

Exit codes:
- 0: Success
- 1: Any maintenance error (connectivity, schema, constraint, conflict)
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from shared.config import LOG_FORMAT, get_settings
from backend.core.errors import ConnectivityError, MaintenanceError, RepairConflictError

logger = logging.getLogger(__name__)


def _configure(args) -> None:
    env_path = Path(args.env_file) if args.env_file else Path.cwd() / '.env'
    if env_path.exists():
        load_dotenv(env_path)
        get_settings.cache_clear()

    level = logging.DEBUG if args.verbose else get_settings().log_level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _engine(args):
    from backend.db.config import create_db_engine, get_engine

    if args.database_url:
        return create_db_engine(args.database_url, echo=get_settings().sql_echo)
    return get_engine()


def cmd_check_db(args) -> int:
    """Connect, list tables and describe the login table"""
    from backend.db.config import check_db_health, get_db_info

    engine = _engine(args)
    print("Testing database connection...\n")
    if not check_db_health(engine):
        print("❌ Connection failed!")
        print("\nPossible solutions:")
        print("1. Make sure the MySQL server is running")
        print("2. Check DATABASE_URL in your .env file")
        print("3. Verify the database exists")
        return 1

    print("✅ Connected!")
    info = get_db_info(engine)
    print(f"\n📋 Tables in {info['url']}:")
    for name in info['tables']:
        print(f"   - {name}")

    if info['columns'] is None:
        print(f"\n❌ Table \"{info['table']}\" not found")
        return 1

    print(f"\n✅ Table \"{info['table']}\" exists with columns:")
    for col in info['columns']:
        print(f"   - {col['name']} ({col['type']})")
    return 0


def cmd_init_db(args) -> int:
    """Create missing tables (fresh installs)"""
    from backend.db.config import get_db_info, init_db
    from backend.db.value_store import map_db_error

    engine = _engine(args)
    try:
        init_db(engine)
    except SQLAlchemyError as e:
        raise map_db_error(e, "Creating tables") from e

    print(f"✅ Tables ready: {', '.join(get_db_info(engine)['tables'])}")
    return 0


def cmd_inspect(args) -> int:
    """Show the phone column definition"""
    from backend.db.migrations import inspect_column

    settings = get_settings()
    try:
        connection = _engine(args).connect()
    except SQLAlchemyError as e:
        raise ConnectivityError(f"Cannot connect to database: {e}") from e

    with connection as conn:
        state = inspect_column(conn, settings.phone_table, settings.phone_value_column)
    print(json.dumps(state.to_dict(), indent=2))
    return 0


def cmd_repair(args) -> int:
    """Run (or preview) the phone number migration"""
    from backend.tasks.repair_task import PhoneNumberRepairTask

    task = PhoneNumberRepairTask(_engine(args))
    report = task.run(dry_run=args.dry_run)

    if report.plan and report.plan.rewrites:
        print(f"\nChanges{' to make' if args.dry_run else ''}: {len(report.plan.rewrites)}")
        for rewrite in report.plan.rewrites[:args.sample]:
            print(f"  [{rewrite.record_id}] {rewrite.old_value!r} -> {rewrite.new_value}")
        if len(report.plan.rewrites) > args.sample:
            print(f"  ... and {len(report.plan.rewrites) - args.sample} more")
    print(f"\n{report.summary()}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="medhome-maintenance",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    ap.add_argument("--database-url", help="Override DATABASE_URL")
    ap.add_argument("--env-file", help="Path to .env file (default: ./.env)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("check-db", help="Test the database connection").set_defaults(func=cmd_check_db)
    sub.add_parser("init-db", help="Create missing tables on a fresh install").set_defaults(func=cmd_init_db)
    sub.add_parser("inspect", help="Describe the phone number column").set_defaults(func=cmd_inspect)

    repair = sub.add_parser("repair", help="Repair phone numbers and apply the UNIQUE constraint")
    repair.add_argument("--dry-run", action="store_true", help="Preview only; alter and write nothing")
    repair.add_argument("--sample", type=int, default=20, help="Number of changes to print")
    repair.set_defaults(func=cmd_repair)

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure(args)

    try:
        return args.func(args)
    except RepairConflictError as e:
        logger.error(f"❌ Migration failed: {e}")
        for conflict in e.conflicts[:20]:
            print(f"  [{conflict.record_id}] {conflict.value} ({conflict.kind.value}: {conflict.detail})")
        return 1
    except MaintenanceError as e:
        logger.error(f"❌ Migration failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
