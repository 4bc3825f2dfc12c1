"""Quote session: the state container of the batch quote calculator.

Owns the schema registry, the global state and the snapshot store.
All mutations go through this object and end with ``save()``. Destructive
or schema-resetting operations ask the injected ``confirm`` callback first.
"""

import asyncio
from typing import Any, Callable, Dict, Optional

import structlog

from config.errors import ErrorCode, NotFoundError, PersistenceError, SourceUnavailableError
from config.settings import Settings
from models.quotation import AppState, Item, Quotation, QuotationTotals, SummaryTotals
from services import quotation_model, totals_engine
from services.schema_builder import build_job_types, build_machines
from services.schema_registry import SchemaRegistry
from services.tabular_source import load_rows
from utils.numeric import num
from validators.state_validator import repair_active_id, validate_state_snapshot

logger = structlog.get_logger()

ConfirmFn = Callable[[str], bool]

DEFAULT_QUOTATION_NAME = "Quote 1"
UNTITLED_NAME = "Untitled"

# Source load outcomes reported by load_sources()
SOURCE_REPLACED = "replaced"
SOURCE_UNCHANGED = "unchanged"
SOURCE_FAILED = "failed"


def _always_confirm(message: str) -> bool:
    return True


class QuoteSession:
    """Explicitly owned context passed to every quoting operation."""

    def __init__(
        self,
        settings: Settings,
        store,
        state: AppState,
        registry: Optional[SchemaRegistry] = None,
        confirm: Optional[ConfirmFn] = None,
    ):
        """Initialize QuoteSession.

        Prefer ``QuoteSession.start`` which loads the persisted snapshot.

        Args:
            settings: Application settings
            store: Snapshot store (JsonFileStateStore or DisabledStateStore)
            state: Initial global state
            registry: Schema registry; placeholders when omitted
            confirm: Yes/no callback for destructive operations
        """
        self.settings = settings
        self.store = store
        self.state = state
        self.registry = registry or SchemaRegistry()
        self.confirm = confirm or _always_confirm

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @classmethod
    def start(
        cls,
        settings: Settings,
        store,
        confirm: Optional[ConfirmFn] = None,
        registry: Optional[SchemaRegistry] = None,
    ) -> "QuoteSession":
        """Build a session from the persisted snapshot, or from defaults."""
        registry = registry or SchemaRegistry()
        state = cls._load_state(store)
        if state is None:
            state = cls.default_state(registry)
            logger.info("session_started_fresh")
        else:
            logger.info("session_restored", quotations=len(state.quotations))
        return cls(settings, store, state, registry=registry, confirm=confirm)

    @staticmethod
    def default_state(registry: SchemaRegistry) -> AppState:
        quotation = quotation_model.create_quotation(registry, DEFAULT_QUOTATION_NAME)
        return AppState(quotations=[quotation], active_id=quotation.id, tax_pct=0)

    @staticmethod
    def _load_state(store) -> Optional[AppState]:
        try:
            raw = store.load()
        except PersistenceError as e:
            logger.warning("state_snapshot_unreadable", error=e.message, path=e.path)
            return None
        if raw is None:
            return None
        result = validate_state_snapshot(raw)
        if not result.is_valid:
            logger.warning("state_snapshot_rejected", code=ErrorCode.INVALID_SNAPSHOT, errors=result.errors[:5])
            return None
        return result.parsed

    def save(self) -> None:
        """Write the full snapshot; failures are logged, never raised."""
        try:
            self.store.save(self.state.to_snapshot())
        except PersistenceError as e:
            logger.error("state_snapshot_save_failed", error=e.message, path=e.path)

    # =========================================================================
    # Tabular sources
    # =========================================================================

    async def _load_machines(self) -> str:
        location = self.settings.machines_source
        try:
            rows = await load_rows(location, timeout=self.settings.source_timeout_seconds)
        except SourceUnavailableError as e:
            logger.warning("machines_source_unavailable", location=location, error=e.message)
            return SOURCE_FAILED
        replaced = self.registry.replace_machines(build_machines(rows))
        return SOURCE_REPLACED if replaced else SOURCE_UNCHANGED

    async def _load_job_types(self) -> str:
        location = self.settings.job_fields_source
        try:
            rows = await load_rows(location, timeout=self.settings.source_timeout_seconds)
        except SourceUnavailableError as e:
            logger.warning("job_fields_source_unavailable", location=location, error=e.message)
            return SOURCE_FAILED
        replaced = self.registry.replace_job_types(build_job_types(rows))
        return SOURCE_REPLACED if replaced else SOURCE_UNCHANGED

    async def load_sources(self) -> Dict[str, str]:
        """Load machines and job fields concurrently.

        Both loads touch disjoint registries. Quotations are reconciled only
        when the job type registry was replaced, after both loads finished.

        Returns:
            Outcome per source: "replaced", "unchanged" or "failed".
        """
        machines_outcome, job_types_outcome = await asyncio.gather(
            self._load_machines(),
            self._load_job_types(),
        )
        if job_types_outcome == SOURCE_REPLACED:
            repaired = self.reconcile()
        else:
            # Registry untouched: restored quotations may still await their job types
            repaired = []
            repair_active_id(self.state)
        report = {"machines": machines_outcome, "job_types": job_types_outcome}
        logger.info("sources_loaded", repaired_quotations=repaired, **report)
        if repaired or SOURCE_REPLACED in report.values():
            self.save()
        return report

    def reconcile(self) -> list:
        """Repair quotations whose job type left the registry."""
        repaired = quotation_model.reconcile_quotations(self.registry, self.state.quotations)
        repair_active_id(self.state)
        return repaired

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_quotation(self, quotation_id: str) -> Quotation:
        quotation = self.state.find_quotation(quotation_id)
        if quotation is None:
            raise NotFoundError(ErrorCode.QUOTATION_NOT_FOUND, quotation_id)
        return quotation

    def get_item(self, quotation_id: str, item_id: str) -> Item:
        quotation = self.get_quotation(quotation_id)
        item = quotation.find_item(item_id)
        if item is None:
            raise NotFoundError(ErrorCode.ITEM_NOT_FOUND, item_id, details={"quotation_id": quotation_id})
        return item

    def active_quotation(self) -> Quotation:
        """The selected quotation, repairing the selection if it dangles."""
        repair_active_id(self.state)
        return self.get_quotation(self.state.active_id)

    # =========================================================================
    # Quotations
    # =========================================================================

    def select_quotation(self, quotation_id: str) -> Quotation:
        quotation = self.get_quotation(quotation_id)
        self.state.active_id = quotation.id
        self.save()
        return quotation

    def add_quotation(self, name: Optional[str] = None) -> Quotation:
        """Append a quotation and make it active."""
        name = name or f"Quote {len(self.state.quotations) + 1}"
        quotation = quotation_model.create_quotation(self.registry, name)
        self.state.quotations.append(quotation)
        self.state.active_id = quotation.id
        self.save()
        return quotation

    def rename_quotation(self, quotation_id: str, name: str) -> Quotation:
        quotation = self.get_quotation(quotation_id)
        quotation.name = name if name and name.strip() else UNTITLED_NAME
        self.save()
        return quotation

    def delete_quotation(self, quotation_id: str) -> bool:
        """Delete a quotation after confirmation.

        The collection never ends up empty and the first quotation becomes
        active.

        Returns:
            True when deleted, False when the user declined.
        """
        quotation = self.get_quotation(quotation_id)
        if not self.confirm("Delete this quotation?"):
            return False
        self.state.quotations.remove(quotation)
        if not self.state.quotations:
            self.state.quotations.append(
                quotation_model.create_quotation(self.registry, DEFAULT_QUOTATION_NAME)
            )
        self.state.active_id = self.state.quotations[0].id
        logger.info("quotation_deleted", quotation_id=quotation_id, remaining=len(self.state.quotations))
        self.save()
        return True

    def change_job_type(self, quotation_id: str, job_type_id: str) -> bool:
        """Switch a quotation's job type after confirmation; item values reset.

        Returns:
            True when applied, False when the user declined.
        """
        quotation = self.get_quotation(quotation_id)
        if not self.confirm("Change job type for this quotation? All item fields will reset."):
            return False
        job_type = quotation_model.apply_job_type(self.registry, quotation, job_type_id)
        logger.info(
            "quotation_job_type_changed",
            quotation_id=quotation.id,
            job_type_id=job_type.id,
            items_reset=len(quotation.items),
        )
        self.save()
        return True

    def set_tax_pct(self, value: Any) -> float:
        """Set the global tax percentage (numeric coercion, negatives clamp to 0)."""
        self.state.tax_pct = max(num(value, 0), 0.0)
        self.save()
        return self.state.tax_pct

    # =========================================================================
    # Items
    # =========================================================================

    def add_item(self, quotation_id: str) -> Item:
        """Append a default item.

        Raises:
            UnusableSchemaError: If the job type has no fields.
        """
        quotation = self.get_quotation(quotation_id)
        item = quotation_model.create_item(self.registry, quotation)
        quotation.items.append(item)
        self.save()
        return item

    def duplicate_item(self, quotation_id: str, item_id: str) -> Item:
        quotation = self.get_quotation(quotation_id)
        item = quotation_model.duplicate_item(quotation, item_id)
        self.save()
        return item

    def remove_item(self, quotation_id: str, item_id: str) -> bool:
        """Remove an item after confirmation."""
        quotation = self.get_quotation(quotation_id)
        item = self.get_item(quotation_id, item_id)
        if not self.confirm("Remove this item?"):
            return False
        quotation.items.remove(item)
        self.save()
        return True

    def set_item_machine(self, quotation_id: str, item_id: str, machine_id: str) -> Item:
        item = self.get_item(quotation_id, item_id)
        item.machine_id = machine_id
        self.save()
        return item

    def set_item_value(self, quotation_id: str, item_id: str, key: str, value: Any) -> Item:
        """Store a raw value as typed; coercion happens at total time."""
        item = self.get_item(quotation_id, item_id)
        item.values[key] = value
        self.save()
        return item

    # =========================================================================
    # Read views
    # =========================================================================

    def item_total(self, quotation: Quotation, item: Item) -> float:
        return totals_engine.item_total(self.registry, quotation, item)

    def quotation_totals(self, quotation: Quotation) -> QuotationTotals:
        return totals_engine.quotation_totals(self.registry, quotation, self.state.tax_pct)

    def summary_totals(self) -> SummaryTotals:
        return totals_engine.summary_totals(self.registry, self.state.quotations, self.state.tax_pct)
