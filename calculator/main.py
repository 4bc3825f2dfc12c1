"""Command-line shell for the batch quote calculator.

Each invocation restores the session snapshot, loads the machine and job
field sources, applies one command and prints the resulting view.

Usage:
    python main.py summary
    python main.py new-quote "Front office"
    python main.py add-item q_3f9a1c2b7e
    python main.py set q_3f9a1c2b7e it_91b0c4d2aa units 4
    python main.py tax 12
    python main.py --no-persist --job-fields data/job_fields_demo.csv schema
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import structlog

from config.errors import QuoteCalcError
from config.settings import Settings, settings as default_settings
from services.quote_session import QuoteSession
from services.state_store import create_state_store
from utils.session_logger import (
    configure_logging,
    log_sources_report,
    render_quotation,
    render_schema,
    render_summary,
)

logger = structlog.get_logger()


# ============================================================================
# Helper Functions
# ============================================================================


def prompt_confirm(message: str) -> bool:
    """Ask a yes/no question on stdin; anything but y/yes declines."""
    try:
        answer = input(f"{message} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="quote-calc", description="Schema-driven batch quote calculator")
    parser.add_argument("--machines", help="Machines CSV path or URL (MACHINES_SOURCE)")
    parser.add_argument("--job-fields", help="Job fields CSV path or URL (JOB_FIELDS_SOURCE)")
    parser.add_argument("--state-dir", help="Directory holding the state snapshot (STATE_DIR)")
    parser.add_argument("--no-persist", action="store_true", help="Do not read or write the state snapshot")
    parser.add_argument("--yes", "-y", action="store_true", help="Answer yes to every confirmation")
    parser.add_argument("--log-level", help="Log level (LOG_LEVEL)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("summary", help="Totals across all quotations")
    show = sub.add_parser("show", help="Show a quotation (the active one by default)")
    show.add_argument("quote_id", nargs="?")
    sub.add_parser("schema", help="List job types, fields, rules and machines")

    new_quote = sub.add_parser("new-quote", help="Create a quotation and make it active")
    new_quote.add_argument("name", nargs="?")
    select = sub.add_parser("select", help="Make a quotation active")
    select.add_argument("quote_id")
    rename = sub.add_parser("rename", help="Rename a quotation")
    rename.add_argument("quote_id")
    rename.add_argument("name")
    delete = sub.add_parser("delete-quote", help="Delete a quotation")
    delete.add_argument("quote_id")
    job_type = sub.add_parser("job-type", help="Change a quotation's job type (resets item values)")
    job_type.add_argument("quote_id")
    job_type.add_argument("job_type_id")

    add_item = sub.add_parser("add-item", help="Add an item with default values")
    add_item.add_argument("quote_id")
    dup_item = sub.add_parser("dup-item", help="Duplicate an item")
    dup_item.add_argument("quote_id")
    dup_item.add_argument("item_id")
    remove_item = sub.add_parser("remove-item", help="Remove an item")
    remove_item.add_argument("quote_id")
    remove_item.add_argument("item_id")
    set_value = sub.add_parser("set", help="Set an item field value")
    set_value.add_argument("quote_id")
    set_value.add_argument("item_id")
    set_value.add_argument("key")
    set_value.add_argument("value")
    machine = sub.add_parser("machine", help="Bind an item to a machine")
    machine.add_argument("quote_id")
    machine.add_argument("item_id")
    machine.add_argument("machine_id")

    tax = sub.add_parser("tax", help="Set the global tax percentage")
    tax.add_argument("pct")
    return parser


def settings_from_args(args: argparse.Namespace, base: Settings) -> Settings:
    """Command-line options override environment settings."""
    overrides = Settings(
        machines_source=args.machines or base.machines_source,
        job_fields_source=args.job_fields or base.job_fields_source,
        source_timeout_seconds=base.source_timeout_seconds,
        state_dir=args.state_dir or base.state_dir,
        storage_version=base.storage_version,
        no_persist=args.no_persist or base.no_persist,
        currency_symbol=base.currency_symbol,
        log_level=args.log_level or base.log_level,
    )
    overrides.validate()
    return overrides


# ============================================================================
# Command dispatch
# ============================================================================


def run_command(session: QuoteSession, args: argparse.Namespace) -> str:
    """Apply one command and return the text to print."""
    command = args.command

    if command == "summary":
        return render_summary(session)
    if command == "schema":
        return render_schema(session.registry)
    if command == "show":
        quotation = session.get_quotation(args.quote_id) if args.quote_id else session.active_quotation()
        return render_quotation(session, quotation)

    if command == "new-quote":
        quotation = session.add_quotation(args.name)
        return render_quotation(session, quotation)
    if command == "select":
        return render_quotation(session, session.select_quotation(args.quote_id))
    if command == "rename":
        return render_quotation(session, session.rename_quotation(args.quote_id, args.name))
    if command == "delete-quote":
        if not session.delete_quotation(args.quote_id):
            return "Cancelled."
        return render_summary(session)
    if command == "job-type":
        if not session.change_job_type(args.quote_id, args.job_type_id):
            return "Cancelled."
        return render_quotation(session, session.get_quotation(args.quote_id))

    if command == "add-item":
        session.add_item(args.quote_id)
        return render_quotation(session, session.get_quotation(args.quote_id))
    if command == "dup-item":
        session.duplicate_item(args.quote_id, args.item_id)
        return render_quotation(session, session.get_quotation(args.quote_id))
    if command == "remove-item":
        if not session.remove_item(args.quote_id, args.item_id):
            return "Cancelled."
        return render_quotation(session, session.get_quotation(args.quote_id))
    if command == "set":
        session.set_item_value(args.quote_id, args.item_id, args.key, args.value)
        return render_quotation(session, session.get_quotation(args.quote_id))
    if command == "machine":
        session.set_item_machine(args.quote_id, args.item_id, args.machine_id)
        return render_quotation(session, session.get_quotation(args.quote_id))

    if command == "tax":
        session.set_tax_pct(args.pct)
        return render_summary(session)

    raise ValueError(f"Unknown command: {command}")


async def run(argv: Optional[List[str]] = None, base_settings: Optional[Settings] = None) -> int:
    """Parse arguments, start the session, load sources and run the command.

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)
    try:
        cfg = settings_from_args(args, base_settings or default_settings)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    configure_logging(cfg.log_level)

    confirm = (lambda message: True) if args.yes else prompt_confirm
    session = QuoteSession.start(cfg, create_state_store(cfg), confirm=confirm)
    log_sources_report(await session.load_sources())

    try:
        print(run_command(session, args))
    except QuoteCalcError as e:
        logger.info("command_rejected", command=args.command, **e.to_dict())
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    return 0


def main() -> None:
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
