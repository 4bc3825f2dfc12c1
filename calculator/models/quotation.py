"""Quotation models for the batch quote calculator.

Items, quotations and the global state snapshot, plus the totals views
handed to the rendering layer. Snapshot keys are camelCase.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Item(BaseModel):
    """One line entry of a quotation."""

    id: str = Field(..., description="Item ID")
    machine_id: str = Field(
        alias="machineId",
        description="Bound machine; dangling ids resolve to the first machine"
    )
    values: Dict[str, Any] = Field(
        default_factory=dict,
        description="Raw field values keyed by field key, as typed by the user"
    )

    class Config:
        populate_by_name = True


class Quotation(BaseModel):
    """A named collection of items sharing one job type."""

    id: str = Field(..., description="Quotation ID")
    name: str = Field(..., description="Display name")
    job_type_id: str = Field(
        alias="jobTypeId",
        description="Selected job type; dangling ids resolve to the first job type"
    )
    items: List[Item] = Field(default_factory=list, description="Items in display order")

    class Config:
        populate_by_name = True

    def find_item(self, item_id: str) -> Optional[Item]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def item_index(self, item_id: str) -> int:
        """Position of an item, or -1."""
        for idx, item in enumerate(self.items):
            if item.id == item_id:
                return idx
        return -1


class AppState(BaseModel):
    """Global state persisted as a single snapshot."""

    quotations: List[Quotation] = Field(default_factory=list, description="Quotations in display order")
    active_id: Optional[str] = Field(
        default=None,
        alias="activeId",
        description="Currently selected quotation"
    )
    tax_pct: float = Field(
        default=0.0,
        alias="taxPct",
        description="Tax percentage applied to every quotation subtotal"
    )

    class Config:
        populate_by_name = True

    def find_quotation(self, quotation_id: Optional[str]) -> Optional[Quotation]:
        for quotation in self.quotations:
            if quotation.id == quotation_id:
                return quotation
        return None

    def to_snapshot(self) -> Dict[str, Any]:
        """Convert to the JSON-compatible snapshot dict.

        Returns:
            Dict with camelCase keys.
        """
        return self.model_dump(by_alias=True, mode="json")


class QuotationTotals(BaseModel):
    """Derived totals of one quotation."""

    subtotal: float = 0.0
    tax: float = 0.0
    grand: float = 0.0


class SummaryTotals(BaseModel):
    """Derived totals across every quotation."""

    subtotal: float = 0.0
    tax: float = 0.0
    grand_total: float = Field(default=0.0, alias="grandTotal")
    quotation_count: int = Field(default=0, alias="quotationCount")

    class Config:
        populate_by_name = True
