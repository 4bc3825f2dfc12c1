"""Schema models for the batch quote calculator.

Job types, their field definitions and compute rules, and machines.
A compute rule is a tagged variant selected when the job type is built;
``services.compute_rules.evaluate_rule`` is the single dispatch point.
"""

from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class FieldType(str, Enum):
    """Input type of a field definition."""

    TEXT = "text"
    NUMBER = "number"


class ComputeKind(str, Enum):
    """Aggregation strategies a job type can use."""

    UNITS_COST_SUM = "units_cost_sum"
    NUMERIC_SUM = "numeric_sum"
    FORMULA = "formula"


# =============================================================================
# FIELD DEFINITION
# =============================================================================


class FieldDefinition(BaseModel):
    """One typed input slot within a job type."""

    key: str = Field(..., min_length=1, description="Value key, unique within the job type")
    label: str = Field(..., description="Display label")
    type: FieldType = Field(default=FieldType.TEXT, description="Input type")
    min: Optional[float] = Field(default=None, description="Lower bound hint for numeric inputs")
    step: Optional[float] = Field(default=None, description="Step hint for numeric inputs")
    default: Optional[Union[float, str]] = Field(
        default=None,
        description="Initial value for new items (number for numeric fields, string for text)"
    )

    @property
    def is_numeric(self) -> bool:
        return self.type == FieldType.NUMBER

    def initial_value(self) -> Any:
        """Default value with the display-time fallback applied."""
        if self.default is not None:
            return self.default
        return 0 if self.is_numeric else ""


# =============================================================================
# COMPUTE RULES
# =============================================================================


class UnitsCostSumRule(BaseModel):
    """units × (sum of cost/rate fields)."""

    kind: Literal["units_cost_sum"] = "units_cost_sum"
    units_key: str = Field(..., description="Key of the units field")
    cost_keys: List[str] = Field(..., min_length=1, description="Keys of the cost/rate fields")


class NumericSumRule(BaseModel):
    """Sum of every numeric field."""

    kind: Literal["numeric_sum"] = "numeric_sum"
    numeric_keys: List[str] = Field(default_factory=list, description="Keys of the numeric fields")


class FormulaRule(BaseModel):
    """Arithmetic expression over field keys."""

    kind: Literal["formula"] = "formula"
    expression: str = Field(..., description="Expression using field keys, numbers, + - * / and parentheses")


ComputeRule = Annotated[
    Union[UnitsCostSumRule, NumericSumRule, FormulaRule],
    Field(discriminator="kind"),
]


# =============================================================================
# JOB TYPE / MACHINE
# =============================================================================


class JobType(BaseModel):
    """A named schema of fields plus the rule that prices an item."""

    id: str = Field(..., min_length=1, description="Job type ID, unique across the registry")
    name: str = Field(..., description="Display name")
    fields: List[FieldDefinition] = Field(default_factory=list, description="Ordered field definitions")
    rule: ComputeRule = Field(default_factory=NumericSumRule, description="Compute rule frozen at build time")

    @property
    def is_usable(self) -> bool:
        """A job type without fields cannot create items."""
        return len(self.fields) > 0

    def field_keys(self) -> List[str]:
        return [f.key for f in self.fields]

    def get_field(self, key: str) -> Optional[FieldDefinition]:
        for f in self.fields:
            if f.key == key:
                return f
        return None


class Machine(BaseModel):
    """A machine an item can be bound to."""

    id: str = Field(..., min_length=1, description="Machine ID")
    name: str = Field(..., description="Display name")


# =============================================================================
# BUILT-IN PLACEHOLDERS
# =============================================================================


def get_default_machines() -> List[Machine]:
    """Placeholder machine registry used until a machine source loads."""
    return [Machine(id="mA", name="Machine A")]


def get_default_job_types() -> List[JobType]:
    """Placeholder job type used until a job fields source loads."""
    return [
        JobType(
            id="jobA",
            name="Job A",
            fields=[
                FieldDefinition(key="units", label="Units", type=FieldType.NUMBER, min=0, step=1, default=1),
                FieldDefinition(key="costA", label="Cost A (per unit)", type=FieldType.NUMBER, min=0, step=0.01, default=0),
            ],
            rule=UnitsCostSumRule(units_key="units", cost_keys=["costA"]),
        )
    ]
