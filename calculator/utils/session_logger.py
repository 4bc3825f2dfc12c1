"""Logging setup and text reports for the quote calculator shell.

Structured events go through structlog. The render_* helpers build the
banner-style text views printed by the command-line shell; they return
strings so callers decide where the text goes.
"""

import logging
import sys
from typing import Dict, List

import structlog

from models.quotation import Quotation
from services.compute_rules import describe_rule

logger = structlog.get_logger()

# Visual markers for different report types
BANNER_WIDTH = 72
SUMMARY_BANNER_CHAR = "█"
QUOTE_BANNER_CHAR = "═"
ITEM_BANNER_CHAR = "─"


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog for console output at the given level."""
    min_level = getattr(logging, level.upper(), logging.INFO)
    if not isinstance(min_level, int):
        min_level = logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Create a centered banner with given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def format_money(value: float, symbol: str = "₱") -> str:
    return f"{symbol} {value:,.2f}"


def render_summary(session) -> str:
    """Summary bar plus one line per quotation (the active one marked)."""
    symbol = session.settings.currency_symbol
    summary = session.summary_totals()
    lines = [
        SUMMARY_BANNER_CHAR * BANNER_WIDTH,
        _create_banner(SUMMARY_BANNER_CHAR, "SUMMARY (ALL QUOTATIONS)"),
        SUMMARY_BANNER_CHAR * BANNER_WIDTH,
        f"║ Quotes       : {summary.quotation_count}",
        f"║ Subtotal     : {format_money(summary.subtotal, symbol)}",
        f"║ Tax          : {format_money(summary.tax, symbol)}",
        f"║ Grand Total  : {format_money(summary.grand_total, symbol)}",
        SUMMARY_BANNER_CHAR * BANNER_WIDTH,
    ]
    for quotation in session.state.quotations:
        totals = session.quotation_totals(quotation)
        job_type = session.registry.job_type_by_id(quotation.job_type_id)
        marker = "▶" if quotation.id == session.state.active_id else " "
        lines.append(
            f"{marker} {quotation.name} [{quotation.id}] · {job_type.name} · "
            f"items {len(quotation.items)} · grand {format_money(totals.grand, symbol)}"
        )
    return "\n".join(lines)


def render_quotation(session, quotation: Quotation) -> str:
    """Editor view of one quotation: items, their values and totals."""
    symbol = session.settings.currency_symbol
    registry = session.registry
    job_type = registry.job_type_by_id(quotation.job_type_id)
    totals = session.quotation_totals(quotation)

    lines = [
        QUOTE_BANNER_CHAR * BANNER_WIDTH,
        _create_banner(QUOTE_BANNER_CHAR, quotation.name.upper()),
        QUOTE_BANNER_CHAR * BANNER_WIDTH,
        f"║ Quotation ID : {quotation.id}",
        f"║ Job Type     : {job_type.name} ({job_type.id})",
        f"║ Machines     : {len(registry.machines)} • JobTypes: {len(registry.job_types)}",
    ]

    if not job_type.is_usable:
        lines.append("║ The selected Job Type has no fields to render.")
        lines.append(QUOTE_BANNER_CHAR * BANNER_WIDTH)
        return "\n".join(lines)

    for idx, item in enumerate(quotation.items, start=1):
        machine = registry.machine_by_id(item.machine_id)
        lines.append(ITEM_BANNER_CHAR * BANNER_WIDTH)
        lines.append(f"│ Item {idx} [{item.id}] · {machine.name}")
        for f in job_type.fields:
            value = item.values.get(f.key, "")
            lines.append(f"│   {f.label} ({f.key}): {'' if value is None else value}")
        lines.append(f"│   Item total: {format_money(session.item_total(quotation, item), symbol)}")

    lines.extend([
        QUOTE_BANNER_CHAR * BANNER_WIDTH,
        f"║ Subtotal     : {format_money(totals.subtotal, symbol)}",
        f"║ Tax ({session.state.tax_pct:g}%)    : {format_money(totals.tax, symbol)}",
        f"║ Grand Total  : {format_money(totals.grand, symbol)}",
        QUOTE_BANNER_CHAR * BANNER_WIDTH,
    ])
    return "\n".join(lines)


def render_schema(registry) -> str:
    """Job types with their fields and rules, and the machine list."""
    lines: List[str] = [_create_banner(ITEM_BANNER_CHAR, "JOB TYPES")]
    for job_type in registry.job_types:
        lines.append(f"{job_type.id}: {job_type.name} → {describe_rule(job_type.rule)}")
        for f in job_type.fields:
            bounds = ", ".join(
                f"{name}={getattr(f, name):g}"
                for name in ("min", "step")
                if getattr(f, name) is not None
            )
            suffix = f" [{bounds}]" if bounds else ""
            lines.append(f"    {f.key} ({f.type.value}) \"{f.label}\" default={f.initial_value()!r}{suffix}")
    lines.append(_create_banner(ITEM_BANNER_CHAR, "MACHINES"))
    for machine in registry.machines:
        lines.append(f"{machine.id}: {machine.name}")
    return "\n".join(lines)


def log_sources_report(report: Dict[str, str]) -> None:
    """Log per-source load outcomes at a level matching the worst outcome."""
    if "failed" in report.values():
        logger.warning("source_load_report", **report)
    else:
        logger.info("source_load_report", **report)
