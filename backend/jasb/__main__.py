"""JASB CLI entry point."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from jasb import __version__
from jasb.config import get_settings
from jasb.database.session import dispose_engine, get_db_session, init_models
from jasb.errors import LedgerError
from jasb.services import auth_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# JASB Configuration
# Wagering rules and operational parameters.
# Secrets (database password, Logfire token) belong in .env, not here.

rules:
  initial_balance: 1000
  max_stake_while_in_debt: 100
  notable_stake: 500
  min_stake: 1
  leaderboard_size: 100

auth:
  session_lifetime_days: 7
  session_id_size: 64

notifier:
  webhook_url: ""
  timeout_seconds: 10.0
"""


def cmd_init(args: argparse.Namespace) -> int:
    """Create the data directory and a configuration template."""
    data_dir = Path("data").resolve()

    try:
        data_dir.mkdir(exist_ok=True)
        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Set DATABASE__URL (and LOGFIRE_TOKEN) in .env")
        print("2. Run 'python -m jasb init-db' to create the schema")
        print("3. Run 'python -m jasb serve' to start the API\n")
        return 0

    except OSError as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()
    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1

    rules = settings.rules
    print("\n=== JASB Configuration ===\n")
    print(f"Data Directory: {settings.data_dir}")
    print(f"Environment: {settings.environment}\n")
    print("Rules:")
    print(f"  Initial Balance: {rules.initial_balance}")
    print(f"  Max Stake While In Debt: {rules.max_stake_while_in_debt}")
    print(f"  Notable Stake: {rules.notable_stake}")
    print(f"  Min Stake: {rules.min_stake}\n")
    print(f"Session Lifetime: {settings.auth.session_lifetime_days} days")
    print(f"Feed Webhook: {'✓ Set' if settings.notifier.webhook_url else '✗ Not set'}")
    print(f"Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")
    return 0


async def _init_db() -> None:
    try:
        await init_models()
    finally:
        await dispose_engine()


def cmd_init_db(args: argparse.Namespace) -> int:
    """Create database tables."""
    try:
        asyncio.run(_init_db())
        print("\n✓ Database schema created\n")
        return 0
    except Exception as e:
        logger.error(f"Failed to create schema: {e}", exc_info=True)
        print(f"\n❌ Failed to create schema: {e}\n")
        return 1


async def _gc_sessions() -> int:
    try:
        async with get_db_session() as db:
            return await auth_service.garbage_collect(db)
    finally:
        await dispose_engine()


def cmd_gc_sessions(args: argparse.Namespace) -> int:
    """Delete expired sessions once."""
    try:
        removed = asyncio.run(_gc_sessions())
        print(f"✓ Removed {removed} expired session(s)")
        return 0
    except Exception as e:
        logger.error(f"Session garbage collection failed: {e}", exc_info=True)
        return 1


async def _login(slug: str, name: str) -> tuple[str, bool]:
    try:
        async with get_db_session() as db:
            _, token, is_new = await auth_service.login(db, slug, name)
            return token, is_new
    finally:
        await dispose_engine()


def cmd_login(args: argparse.Namespace) -> int:
    """Open a session for a user, creating them if needed."""
    try:
        token, is_new = asyncio.run(_login(args.slug, args.name or args.slug))
    except LedgerError as e:
        print(f"\n❌ {e}\n")
        return 1
    if is_new:
        print(f"✓ Created user {args.slug}")
    print(f"X-User: {args.slug}")
    print(f"Authorization: Bearer {token}")
    return 0


async def _set_admin(slug: str, admin: bool) -> None:
    try:
        async with get_db_session() as db:
            await auth_service.set_admin(db, slug, admin)
    finally:
        await dispose_engine()


def cmd_make_admin(args: argparse.Namespace) -> int:
    """Grant (or with --revoke, remove) admin rights."""
    try:
        asyncio.run(_set_admin(args.slug, not args.revoke))
    except LedgerError as e:
        print(f"\n❌ {e}\n")
        return 1
    print(f"✓ {args.slug} is {'no longer ' if args.revoke else ''}an admin")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API."""
    import uvicorn

    from jasb.api import create_app

    settings = get_settings()
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    print(f"\n=== JASB API v{__version__} ===\n")
    uvicorn.run(
        create_app(settings),
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="JASB: wagering ledger and bet resolution",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"JASB {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory and configuration file",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_init_db = subparsers.add_parser(
        "init-db",
        help="Create database tables",
    )
    parser_init_db.set_defaults(func=cmd_init_db)

    parser_gc = subparsers.add_parser(
        "gc-sessions",
        help="Delete expired sessions once",
    )
    parser_gc.set_defaults(func=cmd_gc_sessions)

    parser_login = subparsers.add_parser(
        "login",
        help="Open a session for a user, creating the account if needed",
    )
    parser_login.add_argument("slug", help="User slug")
    parser_login.add_argument("--name", default=None, help="Display name")
    parser_login.set_defaults(func=cmd_login)

    parser_admin = subparsers.add_parser(
        "make-admin",
        help="Grant admin rights to a user",
    )
    parser_admin.add_argument("slug", help="User slug")
    parser_admin.add_argument(
        "--revoke",
        action="store_true",
        help="Remove admin rights instead",
    )
    parser_admin.set_defaults(func=cmd_make_admin)

    parser_serve = subparsers.add_parser(
        "serve",
        help="Run the HTTP API",
    )
    parser_serve.add_argument("--host", default=None, help="Bind address")
    parser_serve.add_argument("--port", type=int, default=None, help="Bind port")
    parser_serve.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
