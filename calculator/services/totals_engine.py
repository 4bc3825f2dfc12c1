"""Totals Engine.

Per-item, per-quotation and global aggregation. Item totals never raise:
a failing compute rule makes the item contribute 0.
"""

from typing import Any, Iterable

import structlog

from config.errors import ErrorCode
from models.quotation import Item, Quotation, QuotationTotals, SummaryTotals
from services.compute_rules import evaluate_rule
from services.schema_registry import SchemaRegistry
from utils.numeric import num, round2

logger = structlog.get_logger()


def item_total(registry: SchemaRegistry, quotation: Quotation, item: Item) -> float:
    """Total of one item under its quotation's job type."""
    job_type = registry.job_type_by_id(quotation.job_type_id)
    try:
        return round2(evaluate_rule(job_type.rule, item.values))
    except Exception as e:
        logger.debug(
            "item_total_failed",
            code=ErrorCode.COMPUTE_FAILED,
            quotation_id=quotation.id,
            item_id=item.id,
            job_type_id=job_type.id,
            error=str(e),
        )
        return 0.0


def quotation_totals(registry: SchemaRegistry, quotation: Quotation, tax_pct: Any) -> QuotationTotals:
    """Subtotal, tax and grand total of a quotation.

    Args:
        registry: Current schema registry
        quotation: Quotation to total
        tax_pct: Global tax percentage (coerced; non-numeric reads as 0)
    """
    subtotal = round2(sum(item_total(registry, quotation, item) for item in quotation.items))
    tax = round2(subtotal * (num(tax_pct, 0) / 100))
    return QuotationTotals(subtotal=subtotal, tax=tax, grand=round2(subtotal + tax))


def summary_totals(registry: SchemaRegistry, quotations: Iterable[Quotation], tax_pct: Any) -> SummaryTotals:
    """Totals across all quotations.

    Sums the already-rounded per-quotation values, then rounds each sum.
    """
    subtotal = tax = grand = 0.0
    count = 0
    for quotation in quotations:
        totals = quotation_totals(registry, quotation, tax_pct)
        subtotal += totals.subtotal
        tax += totals.tax
        grand += totals.grand
        count += 1
    return SummaryTotals(
        subtotal=round2(subtotal),
        tax=round2(tax),
        grand_total=round2(grand),
        quotation_count=count,
    )
