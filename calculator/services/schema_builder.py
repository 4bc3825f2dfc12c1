"""Schema Builder for the batch quote calculator.

Turns row-oriented tabular input into machines and job types.

Machines source: one row per machine, id/name columns under any of a few
case-insensitive aliases.

Job fields source: one row per field, grouped into job types by
``job_type_id`` in first-seen order.
    Required: job_type_id, key, label
    Optional: job_type_name, type (text|number), min, step, default, formula

Malformed rows are dropped without aborting the batch. The builders only
produce lists; whether the registry is replaced is decided by
``SchemaRegistry`` (empty results never replace anything).
"""

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog

from config.errors import ErrorCode
from models.schema import (
    FieldDefinition,
    FieldType,
    FormulaRule,
    JobType,
    Machine,
    NumericSumRule,
    UnitsCostSumRule,
)
from services.compute_rules import check_formula
from utils.numeric import as_num

logger = structlog.get_logger()

Row = Mapping[str, Any]

MACHINE_ID_ALIASES = ("machine_id", "machineid", "id")
MACHINE_NAME_ALIASES = ("machine_name", "machinename", "name")

REQUIRED_FIELD_COLUMNS = ("job_type_id", "key", "label")

UNITS_KEY = "units"
COST_KEY_PATTERN = re.compile(r"(cost|rate)", re.IGNORECASE)


def _cell(row: Row, column: str) -> str:
    """Trimmed string value of a column, empty when absent."""
    value = row.get(column)
    return "" if value is None else str(value).strip()


def _has_value(row: Row, column: str) -> bool:
    return _cell(row, column) != ""


def _first_alias(row: Row, aliases: Iterable[str]) -> str:
    """First non-empty value among aliased columns (keys matched case-insensitively)."""
    lowered = {str(k).strip().lower(): v for k, v in row.items()}
    for alias in aliases:
        value = _cell(lowered, alias)
        if value:
            return value
    return ""


# =============================================================================
# MACHINES
# =============================================================================


def build_machines(rows: Iterable[Row]) -> List[Machine]:
    """Build the machine list from source rows.

    Args:
        rows: Row records (column name → string)

    Returns:
        Machines in row order; rows without id or name are dropped and
        repeated ids keep the first row.
    """
    machines: List[Machine] = []
    seen = set()
    dropped = 0
    for row in rows:
        machine_id = _first_alias(row, MACHINE_ID_ALIASES)
        name = _first_alias(row, MACHINE_NAME_ALIASES)
        if not machine_id or not name or machine_id in seen:
            dropped += 1
            continue
        seen.add(machine_id)
        machines.append(Machine(id=machine_id, name=name))

    if dropped:
        logger.debug("machine_rows_dropped", dropped=dropped)
    logger.info("machines_built", count=len(machines))
    return machines


# =============================================================================
# JOB TYPES
# =============================================================================


def normalize_field(row: Row) -> FieldDefinition:
    """Build one field definition from a job fields row.

    ``type`` is ``number`` only when the column literally reads "number";
    everything else is text. Numeric ``min``/``step`` are omitted when not
    numeric and ``default`` falls back to 0. Text ``default`` is copied
    verbatim when the column is present.
    """
    field_type = FieldType.NUMBER if _cell(row, "type").lower() == "number" else FieldType.TEXT
    params: Dict[str, Any] = {
        "key": _cell(row, "key"),
        "label": _cell(row, "label"),
        "type": field_type,
    }

    if field_type == FieldType.NUMBER:
        for bound in ("min", "step"):
            if _has_value(row, bound):
                parsed = as_num(row.get(bound), None)
                if parsed is not None:
                    params[bound] = parsed
        params["default"] = as_num(row.get("default"), 0) if _has_value(row, "default") else 0.0
    elif row.get("default") is not None:
        params["default"] = str(row.get("default"))

    return FieldDefinition(**params)


def infer_compute_rule(fields: List[FieldDefinition]):
    """Pick the default aggregation strategy for a field list.

    1. A ``units`` field plus at least one numeric field whose key contains
       "cost" or "rate" → units × (sum of those fields).
    2. Otherwise → sum of every numeric field.
    """
    units_field = next((f for f in fields if f.key.lower() == UNITS_KEY), None)
    cost_keys = [f.key for f in fields if f.is_numeric and COST_KEY_PATTERN.search(f.key)]

    if units_field is not None and cost_keys:
        return UnitsCostSumRule(units_key=units_field.key, cost_keys=cost_keys)
    return NumericSumRule(numeric_keys=[f.key for f in fields if f.is_numeric])


def _build_rule(job_type_id: str, fields: List[FieldDefinition], formula: Optional[str]):
    """Formula rule when the source supplies one, otherwise the inferred rule."""
    if not formula:
        return infer_compute_rule(fields)

    problems = check_formula(formula, [f.key for f in fields])
    if problems:
        # Kept as-is; evaluation fails later and the item contributes 0
        logger.warning(
            "job_type_formula_invalid",
            code=ErrorCode.INVALID_FORMULA,
            job_type_id=job_type_id,
            formula=formula,
            problems=problems,
        )
    return FormulaRule(expression=formula)


def build_job_types(rows: Iterable[Row]) -> List[JobType]:
    """Group job field rows into job types.

    Args:
        rows: Row records, one per field

    Returns:
        Job types in first-seen order, each with at least one field.
    """
    groups: Dict[str, Dict[str, Any]] = {}
    dropped = 0

    for row in rows:
        if not all(_has_value(row, col) for col in REQUIRED_FIELD_COLUMNS):
            dropped += 1
            continue

        job_type_id = _cell(row, "job_type_id")
        group = groups.get(job_type_id)
        if group is None:
            group = {
                "id": job_type_id,
                "name": _cell(row, "job_type_name") or job_type_id,
                "fields": [],
                "keys": set(),
                "formula": None,
            }
            groups[job_type_id] = group

        field_def = normalize_field(row)
        if field_def.key in group["keys"]:
            dropped += 1
            continue
        group["keys"].add(field_def.key)
        group["fields"].append(field_def)

        if group["formula"] is None and _has_value(row, "formula"):
            group["formula"] = _cell(row, "formula")

    if dropped:
        logger.debug("job_field_rows_dropped", dropped=dropped)

    job_types = [
        JobType(
            id=group["id"],
            name=group["name"],
            fields=group["fields"],
            rule=_build_rule(group["id"], group["fields"], group["formula"]),
        )
        for group in groups.values()
        if group["fields"]
    ]

    logger.info(
        "job_types_built",
        count=len(job_types),
        job_type_ids=[jt.id for jt in job_types],
    )
    return job_types


