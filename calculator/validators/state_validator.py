"""State snapshot parsing and validation.

Deserializes a persisted snapshot into a typed ``AppState`` and repairs
the active selection. A snapshot that cannot be used is reported as
invalid so the session starts from defaults instead.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
import structlog

from models.quotation import AppState
from utils.numeric import num

logger = structlog.get_logger(__name__)


@dataclass
class ValidationResult:
    """Result of snapshot validation."""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    parsed: Optional[AppState] = None


def repair_active_id(state: AppState) -> AppState:
    """Point ``active_id`` at the first quotation when it does not resolve."""
    if state.quotations and state.find_quotation(state.active_id) is None:
        state.active_id = state.quotations[0].id
    return state


def parse_state_snapshot(data: Dict[str, Any]) -> AppState:
    """Parse a raw snapshot into AppState (raises pydantic ValidationError)."""
    return AppState.model_validate(data)


def validate_state_snapshot(data: Any) -> ValidationResult:
    """Validate a persisted snapshot and return the repaired state.

    Args:
        data: Raw snapshot as loaded from the store

    Returns:
        ValidationResult with is_valid, errors, and parsed state
    """
    if not isinstance(data, dict):
        return ValidationResult(is_valid=False, errors=["snapshot must be a dictionary"])

    try:
        parsed = parse_state_snapshot(data)
    except PydanticValidationError as e:
        errors = [f"{err['loc']}: {err['msg']}" for err in e.errors()]
        logger.warning("state_snapshot_invalid", errors=errors[:5])
        return ValidationResult(is_valid=False, errors=errors)

    if not parsed.quotations:
        return ValidationResult(is_valid=False, errors=["snapshot has no quotations"])

    ids = [q.id for q in parsed.quotations]
    if len(set(ids)) != len(ids):
        return ValidationResult(is_valid=False, errors=["duplicate quotation ids"])

    parsed.tax_pct = max(num(parsed.tax_pct, 0), 0.0)
    repair_active_id(parsed)
    return ValidationResult(is_valid=True, errors=[], parsed=parsed)
