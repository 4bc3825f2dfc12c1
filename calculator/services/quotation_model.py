"""Quotation/Item Model.

Entity construction, default values, and the repairs that keep
quotations consistent with the job type registry when it changes.
"""

from typing import Any, Dict, List, Optional
from uuid import uuid4

import structlog

from config.errors import ErrorCode, NotFoundError, UnusableSchemaError
from models.quotation import Item, Quotation
from models.schema import JobType
from services.schema_registry import SchemaRegistry

logger = structlog.get_logger()


def new_id(prefix: str = "id") -> str:
    """Random id such as ``q_3f9a1c2b7e``."""
    return f"{prefix}_{uuid4().hex[:10]}"


def create_quotation(registry: SchemaRegistry, name: str) -> Quotation:
    """New empty quotation bound to the registry's first job type."""
    return Quotation(id=new_id("q"), name=name, job_type_id=registry.first_job_type.id, items=[])


def default_values_for(job_type: Optional[JobType]) -> Dict[str, Any]:
    """Initial values for every field of a job type.

    Numeric fields without a default get 0, text fields get "".
    """
    if job_type is None:
        return {}
    return {f.key: f.initial_value() for f in job_type.fields}


def create_item(registry: SchemaRegistry, quotation: Quotation) -> Item:
    """New item bound to the first machine with the job type's defaults.

    Raises:
        UnusableSchemaError: If the quotation's job type has no fields.
    """
    job_type = registry.job_type_by_id(quotation.job_type_id)
    if not job_type.is_usable:
        raise UnusableSchemaError(job_type.id, details={"quotation_id": quotation.id})
    return Item(
        id=new_id("it"),
        machine_id=registry.first_machine.id,
        values=default_values_for(job_type),
    )


def reset_item_values(quotation: Quotation, job_type: JobType) -> None:
    """Replace every item's values with fresh defaults of ``job_type``."""
    for item in quotation.items:
        item.values = default_values_for(job_type)


def reconcile_quotations(registry: SchemaRegistry, quotations: List[Quotation]) -> List[str]:
    """Re-point quotations whose job type no longer exists.

    Each affected quotation moves to the registry's first job type and all
    of its items are reset to that job type's defaults.

    Args:
        registry: Registry after replacement
        quotations: Quotations to check (mutated in place)

    Returns:
        IDs of the quotations that were repaired.
    """
    repaired = []
    first = registry.first_job_type
    for quotation in quotations:
        if registry.has_job_type(quotation.job_type_id):
            continue
        logger.info(
            "quotation_job_type_repaired",
            quotation_id=quotation.id,
            missing_job_type_id=quotation.job_type_id,
            job_type_id=first.id,
            items_reset=len(quotation.items),
        )
        quotation.job_type_id = first.id
        reset_item_values(quotation, first)
        repaired.append(quotation.id)
    return repaired


def apply_job_type(registry: SchemaRegistry, quotation: Quotation, job_type_id: str) -> JobType:
    """Switch a quotation to another job type (already confirmed by the user).

    Prior item values are discarded; there is no migration by key.

    Returns:
        The job type the quotation now resolves to.
    """
    job_type = registry.job_type_by_id(job_type_id)
    quotation.job_type_id = job_type.id
    reset_item_values(quotation, job_type)
    return job_type


def duplicate_item(quotation: Quotation, item_id: str) -> Item:
    """Insert a deep copy of an item, with a new id, right after it.

    Raises:
        NotFoundError: If the item is not in the quotation.
    """
    idx = quotation.item_index(item_id)
    if idx < 0:
        raise NotFoundError(ErrorCode.ITEM_NOT_FOUND, item_id, details={"quotation_id": quotation.id})
    copy = quotation.items[idx].model_copy(deep=True)
    copy.id = new_id("it")
    quotation.items.insert(idx + 1, copy)
    return copy
