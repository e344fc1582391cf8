#!/usr/bin/env python3
"""
Command-line interface for the Bigcapital client
================================================
Log in once, keep the session in a local credential file, and send
authenticated requests that re-authenticate transparently on 401.

All configuration flows through ``ClientRunConfig`` — environment
variables (``BIGCAPITAL_*``, optionally from a ``.env`` file) first, then
CLI flags.

Run with: python -m bigcapital <command>
"""

import argparse
import asyncio
import getpass
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .auth.credential_store import FileCredentialStore
from .auth.session import Credentials
from .auth.session_factory import describe_record
from .client import BigcapitalClient, build_executor
from .errors import BigcapitalError, ConfigurationError
from .monitor import RequestMonitor
from .run_config import ClientRunConfig

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%H:%M:%S'
    )


def _load_env() -> None:
    """Load ``.env`` from the project root, else from the CWD."""
    env_path = Path(__file__).resolve().parent.parent / '.env'
    if env_path.exists():
        load_dotenv(env_path)
    else:
        load_dotenv()


# ---------------------------------------------------------------------------
# Prompt helpers
# ---------------------------------------------------------------------------

def prompt_credentials(creds: Credentials) -> Credentials:
    """Prompt for missing credentials in the terminal.

    Uses ``getpass`` for secure password entry (no echo).
    """
    print(f"\n{'=' * 55}")
    print("  Bigcapital Authentication Required")
    print(f"{'=' * 55}")

    email = creds.email
    if not email:
        email = input("  Bigcapital Email: ").strip()
    else:
        print(f"  Email: {email}")

    password = creds.password
    if not password:
        password = getpass.getpass("  Bigcapital Password: ")

    print(f"{'=' * 55}\n")
    return Credentials(email=email, password=password)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _store_for(cfg: ClientRunConfig) -> FileCredentialStore:
    return FileCredentialStore(cfg.state_path, max_age=cfg.cookie_max_age)


async def _cmd_login(cfg: ClientRunConfig, args: argparse.Namespace) -> int:
    creds = cfg.credentials
    if not creds.is_complete and not args.no_prompt:
        creds = prompt_credentials(creds)
    if not creds.is_complete:
        raise ConfigurationError("Email and password are required to log in")

    with _store_for(cfg) as store:
        client = await BigcapitalClient.login(
            creds.email, creds.password, config=cfg, store=store, persist=True
        )
        record = store.load()
    print(f"Logged in as {creds.email} (organization {client.session.organization_id})")
    if record is None:
        print("Warning: the session could not be saved", file=sys.stderr)
    return EXIT_OK


async def _cmd_logout(cfg: ClientRunConfig, args: argparse.Namespace) -> int:
    with _store_for(cfg) as store:
        store.clear()
    print("Stored session removed")
    return EXIT_OK


async def _cmd_status(cfg: ClientRunConfig, args: argparse.Namespace) -> int:
    with _store_for(cfg) as store:
        print(describe_record(store.load()))
    return EXIT_OK


async def _open_client(cfg: ClientRunConfig, monitor: RequestMonitor) -> BigcapitalClient:
    store = _store_for(cfg)
    store.init()
    executor = build_executor(cfg, store, monitor=monitor)
    session = await executor.factory.get_session(cfg.credentials, persist=True)
    return BigcapitalClient(session, executor, deadline=cfg.deadline_seconds)


async def _cmd_request(cfg: ClientRunConfig, args: argparse.Namespace) -> int:
    body = None
    if args.data:
        try:
            body = json.loads(args.data)
        except ValueError as exc:
            print(f"--data is not valid JSON: {exc}", file=sys.stderr)
            return EXIT_USAGE

    monitor = RequestMonitor()
    client = await _open_client(cfg, monitor)
    try:
        result = await client.request(args.method, args.endpoint, body)
    finally:
        client.executor.factory.store.teardown()

    if isinstance(result, (dict, list)):
        print(json.dumps(result, indent=2))
    elif result is not None:
        sys.stdout.buffer.write(result.content)
    if args.stats:
        print(monitor.format_summary(await monitor.snapshot()), file=sys.stderr)
    return EXIT_OK


async def _cmd_expenses(cfg: ClientRunConfig, args: argparse.Namespace) -> int:
    client = await _open_client(cfg, RequestMonitor())
    try:
        result = await client.get_expenses(page=args.page, page_size=args.page_size)
    finally:
        client.executor.factory.store.teardown()

    expenses = result.get("expenses", []) if isinstance(result, dict) else []
    for expense in expenses:
        print(
            f"{expense.get('id', '?'):>6}  {expense.get('payment_date', ''):<10}  "
            f"{expense.get('formatted_amount') or expense.get('total_amount', ''):>14}  "
            f"{expense.get('description') or ''}"
        )
    pagination = result.get("pagination") if isinstance(result, dict) else None
    if pagination:
        print(f"\npage {pagination.get('page')} · {pagination.get('total')} total")
    return EXIT_OK


_COMMANDS = {
    "login": _cmd_login,
    "logout": _cmd_logout,
    "status": _cmd_status,
    "request": _cmd_request,
    "expenses": _cmd_expenses,
}


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m bigcapital",
        description="Bigcapital API client with persisted, self-refreshing sessions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  BIGCAPITAL_API_URL, BIGCAPITAL_EMAIL, BIGCAPITAL_PASSWORD,
  BIGCAPITAL_TIMEOUT, BIGCAPITAL_STATE_PATH (a .env file is honoured)

Examples:
  python -m bigcapital login
  python -m bigcapital request GET /api/accounts
  python -m bigcapital request POST /api/expenses/12/publish
  python -m bigcapital expenses --page 2
        """
    )
    parser.add_argument('--base-url', type=str, help='API base URL (default: $BIGCAPITAL_API_URL)')
    parser.add_argument('--email', type=str, help='Login email (default: $BIGCAPITAL_EMAIL)')
    parser.add_argument('--timeout', type=float, help='Per-request timeout in seconds (default: 30)')
    parser.add_argument('--deadline', type=float, help='Overall deadline per call, including re-login')
    parser.add_argument('--state-file', type=str, help='Credential file (default: bigcapital_auth.json)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging (includes response bodies)')

    sub = parser.add_subparsers(dest='command', required=True)

    login = sub.add_parser('login', help='Log in and store the session')
    login.add_argument('--no-prompt', action='store_true', help='Fail instead of prompting for credentials')

    sub.add_parser('logout', help='Remove the stored session')
    sub.add_parser('status', help='Show the stored session (token hidden)')

    request = sub.add_parser('request', help='Send an authenticated request')
    request.add_argument('method', type=str.upper, choices=['GET', 'POST', 'PUT', 'DELETE'])
    request.add_argument('endpoint', help='Path below the base URL, e.g. /api/accounts')
    request.add_argument('--data', type=str, help='JSON request body')
    request.add_argument('--stats', action='store_true', help='Print request metrics to stderr')

    expenses = sub.add_parser('expenses', help='List a page of expenses')
    expenses.add_argument('--page', type=int, default=1)
    expenses.add_argument('--page-size', type=int, default=50)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    _load_env()

    cfg = ClientRunConfig.from_cli_args(args)
    logger.debug(f"[CONFIG] {cfg.summary()}")

    try:
        return asyncio.run(_COMMANDS[args.command](cfg, args))
    except BigcapitalError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
