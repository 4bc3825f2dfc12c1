"""Unit tests for QuoteSession."""

import pytest

from config.errors import ErrorCode, NotFoundError
from services.quote_session import QuoteSession
from services.state_store import DisabledStateStore, create_state_store
from tests.fixtures.mock_source_rows import JOB_FIELDS_CSV, MACHINES_CSV


def _write_sources(settings, machines=MACHINES_CSV, job_fields=JOB_FIELDS_CSV):
    with open(settings.machines_source, "w", encoding="utf-8") as f:
        f.write(machines)
    with open(settings.job_fields_source, "w", encoding="utf-8") as f:
        f.write(job_fields)


# =============================================================================
# Startup
# =============================================================================


class TestStartup:

    def test_fresh_session_has_one_quotation(self, session):
        assert len(session.state.quotations) == 1
        quotation = session.state.quotations[0]
        assert quotation.name == "Quote 1"
        assert quotation.job_type_id == "jobA"
        assert session.state.active_id == quotation.id
        assert session.state.tax_pct == 0

    def test_invalid_snapshot_falls_back_to_defaults(self, test_settings, memory_store):
        memory_store.snapshot = {"quotations": [], "activeId": None, "taxPct": 0}
        session = QuoteSession.start(test_settings, memory_store)
        assert [q.name for q in session.state.quotations] == ["Quote 1"]

    def test_restores_persisted_snapshot(self, test_settings, memory_store):
        memory_store.snapshot = {
            "quotations": [{
                "id": "q_1",
                "name": "Kept",
                "jobTypeId": "jobX",
                "items": [{"id": "it_1", "machineId": "m2", "values": {"units": "3", "rateX": "7"}}],
            }],
            "activeId": "q_missing",
            "taxPct": 12,
        }
        session = QuoteSession.start(test_settings, memory_store)
        quotation = session.active_quotation()
        # Not reconciled against placeholders at startup
        assert quotation.job_type_id == "jobX"
        assert quotation.items[0].values == {"units": "3", "rateX": "7"}
        assert session.state.active_id == "q_1"
        assert session.state.tax_pct == 12


# =============================================================================
# Quotations
# =============================================================================


class TestQuotations:

    def test_add_quotation_becomes_active(self, session, memory_store):
        quotation = session.add_quotation()
        assert quotation.name == "Quote 2"
        assert session.state.active_id == quotation.id
        assert memory_store.saves == 1

    def test_select_quotation(self, session):
        first = session.state.quotations[0]
        session.add_quotation("Second")
        session.select_quotation(first.id)
        assert session.active_quotation().id == first.id

    def test_rename_blank_is_untitled(self, session):
        quotation = session.state.quotations[0]
        assert session.rename_quotation(quotation.id, "Roofing").name == "Roofing"
        assert session.rename_quotation(quotation.id, "   ").name == "Untitled"

    def test_delete_last_quotation_leaves_one(self, session):
        only = session.state.quotations[0]
        assert session.delete_quotation(only.id) is True
        assert len(session.state.quotations) == 1
        replacement = session.state.quotations[0]
        assert replacement.id != only.id
        assert replacement.name == "Quote 1"
        assert session.state.active_id == replacement.id

    def test_delete_makes_first_active(self, session):
        first = session.state.quotations[0]
        second = session.add_quotation()
        session.delete_quotation(second.id)
        assert session.state.active_id == first.id

    def test_declined_delete_keeps_quotation(self, declining_session, memory_store):
        quotation = declining_session.state.quotations[0]
        assert declining_session.delete_quotation(quotation.id) is False
        assert declining_session.state.quotations == [quotation]
        assert memory_store.saves == 0

    def test_unknown_quotation(self, session):
        with pytest.raises(NotFoundError) as exc:
            session.rename_quotation("q_nope", "x")
        assert exc.value.code == ErrorCode.QUOTATION_NOT_FOUND

    @pytest.mark.parametrize("raw,expected", [(12, 12.0), ("7.5", 7.5), ("abc", 0.0), (-5, 0.0)])
    def test_set_tax_pct(self, session, raw, expected):
        assert session.set_tax_pct(raw) == expected
        assert session.state.tax_pct == expected


class TestChangeJobType:

    @pytest.fixture
    def two_job_session(self, session):
        from services.schema_builder import build_job_types
        from services.tabular_source import parse_csv

        session.registry.replace_job_types(build_job_types(parse_csv(JOB_FIELDS_CSV)))
        session.reconcile()
        return session

    def test_change_resets_items(self, two_job_session):
        quotation = two_job_session.active_quotation()
        item = two_job_session.add_item(quotation.id)
        two_job_session.set_item_value(quotation.id, item.id, "units", "9")

        assert two_job_session.change_job_type(quotation.id, "jobY") is True
        assert quotation.job_type_id == "jobY"
        assert quotation.items[0].values == {"hours": 2}

    def test_declined_change_keeps_values(self, two_job_session):
        quotation = two_job_session.active_quotation()
        item = two_job_session.add_item(quotation.id)
        two_job_session.confirm = lambda message: False
        assert two_job_session.change_job_type(quotation.id, "jobY") is False
        assert quotation.job_type_id == "jobX"
        assert item.values == {"units": 1, "rateX": 0}


# =============================================================================
# Items
# =============================================================================


class TestItems:

    def test_add_item_defaults(self, session):
        quotation = session.active_quotation()
        item = session.add_item(quotation.id)
        assert item.machine_id == "mA"
        assert item.values == {"units": 1, "costA": 0}

    def test_values_stored_as_typed(self, session):
        quotation = session.active_quotation()
        item = session.add_item(quotation.id)
        session.set_item_value(quotation.id, item.id, "units", "4")
        session.set_item_value(quotation.id, item.id, "costA", "2.5")
        assert item.values == {"units": "4", "costA": "2.5"}
        assert session.item_total(quotation, item) == 10.0

    def test_end_to_end_totals(self, session):
        quotation = session.active_quotation()
        item = session.add_item(quotation.id)
        session.set_item_value(quotation.id, item.id, "units", 4)
        session.set_item_value(quotation.id, item.id, "costA", 2.5)
        session.set_tax_pct(12)
        totals = session.quotation_totals(quotation)
        assert (totals.subtotal, totals.tax, totals.grand) == (10.0, 1.2, 11.2)
        summary = session.summary_totals()
        assert summary.grand_total == 11.2
        assert summary.quotation_count == 1

    def test_duplicate_and_remove(self, session):
        quotation = session.active_quotation()
        item = session.add_item(quotation.id)
        copy = session.duplicate_item(quotation.id, item.id)
        assert [i.id for i in quotation.items] == [item.id, copy.id]
        assert session.remove_item(quotation.id, item.id) is True
        assert [i.id for i in quotation.items] == [copy.id]

    def test_declined_remove(self, declining_session):
        quotation = declining_session.active_quotation()
        item = declining_session.add_item(quotation.id)
        assert declining_session.remove_item(quotation.id, item.id) is False
        assert quotation.items == [item]

    def test_set_item_machine_keeps_dangling_id(self, session):
        quotation = session.active_quotation()
        item = session.add_item(quotation.id)
        session.set_item_machine(quotation.id, item.id, "m-unknown")
        assert item.machine_id == "m-unknown"
        assert session.registry.machine_by_id(item.machine_id).id == "mA"

    def test_unknown_item(self, session):
        quotation = session.active_quotation()
        with pytest.raises(NotFoundError) as exc:
            session.remove_item(quotation.id, "it_nope")
        assert exc.value.code == ErrorCode.ITEM_NOT_FOUND


# =============================================================================
# Sources
# =============================================================================


@pytest.mark.asyncio
class TestLoadSources:

    async def test_replaces_registries_and_reconciles(self, session, test_settings, memory_store):
        _write_sources(test_settings)
        quotation = session.active_quotation()
        session.add_item(quotation.id)
        saves_before = memory_store.saves

        report = await session.load_sources()

        assert report == {"machines": "replaced", "job_types": "replaced"}
        assert [m.id for m in session.registry.machines] == ["m1", "m2"]
        assert [jt.id for jt in session.registry.job_types] == ["jobX", "jobY"]
        assert quotation.job_type_id == "jobX"
        assert quotation.items[0].values == {"units": 1, "rateX": 0}
        assert memory_store.saves == saves_before + 1

    async def test_failed_sources_keep_restored_quotations(self, test_settings, memory_store):
        memory_store.snapshot = {
            "quotations": [{
                "id": "q_1",
                "name": "Kept",
                "jobTypeId": "jobX",
                "items": [{"id": "it_1", "machineId": "m2", "values": {"units": "3", "rateX": "7"}}],
            }],
            "activeId": "q_gone",
            "taxPct": 0,
        }
        session = QuoteSession.start(test_settings, memory_store)

        report = await session.load_sources()

        assert report == {"machines": "failed", "job_types": "failed"}
        quotation = session.get_quotation("q_1")
        assert quotation.job_type_id == "jobX"
        assert quotation.items[0].values == {"units": "3", "rateX": "7"}
        assert session.state.active_id == "q_1"
        assert memory_store.saves == 0
        assert memory_store.snapshot["quotations"][0]["jobTypeId"] == "jobX"

    async def test_unchanged_job_fields_do_not_reconcile(self, test_settings, memory_store):
        _write_sources(test_settings, job_fields="job_type_id,key,label\n")
        memory_store.snapshot = {
            "quotations": [{"id": "q_1", "name": "Kept", "jobTypeId": "jobX", "items": []}],
            "activeId": "q_1",
            "taxPct": 0,
        }
        session = QuoteSession.start(test_settings, memory_store)
        report = await session.load_sources()
        assert report == {"machines": "replaced", "job_types": "unchanged"}
        assert session.get_quotation("q_1").job_type_id == "jobX"

    async def test_malformed_machine_source_is_not_fatal(self, session, test_settings):
        _write_sources(test_settings, machines="machine_id,machine_name\nm1," + "x" * 200000 + "\n")
        report = await session.load_sources()
        assert report == {"machines": "failed", "job_types": "replaced"}
        assert session.registry.first_machine.id == "mA"

    async def test_oversized_totals_do_not_raise(self, session):
        quotation = session.active_quotation()
        for _ in range(2):
            item = session.add_item(quotation.id)
            session.set_item_value(quotation.id, item.id, "units", "1e306")
            session.set_item_value(quotation.id, item.id, "costA", "1")
        item_total = session.item_total(quotation, quotation.items[0])
        summary = session.summary_totals()
        assert summary.subtotal == 2 * item_total
        assert summary.grand_total == summary.subtotal

    async def test_missing_sources_keep_placeholders(self, session, memory_store):
        report = await session.load_sources()
        assert report == {"machines": "failed", "job_types": "failed"}
        assert session.registry.first_job_type.id == "jobA"
        assert session.active_quotation().job_type_id == "jobA"
        assert memory_store.saves == 0

    async def test_empty_job_fields_keep_registry(self, session, test_settings):
        _write_sources(test_settings, job_fields="job_type_id,key,label\n,,\n")
        report = await session.load_sources()
        assert report == {"machines": "replaced", "job_types": "unchanged"}
        assert session.registry.first_job_type.id == "jobA"

    async def test_persisted_quotation_survives_reload(self, test_settings, file_store):
        _write_sources(test_settings)
        first = QuoteSession.start(test_settings, file_store)
        await first.load_sources()
        quotation = first.active_quotation()
        item = first.add_item(quotation.id)
        first.set_item_value(quotation.id, item.id, "units", "3")
        first.set_item_value(quotation.id, item.id, "rateX", "7")

        second = QuoteSession.start(test_settings, file_store)
        restored = second.active_quotation()
        assert restored.job_type_id == "jobX"
        await second.load_sources()
        restored = second.active_quotation()
        assert restored.items[0].values == {"units": "3", "rateX": "7"}
        assert second.item_total(restored, restored.items[0]) == 21.0


class TestPersistence:

    def test_no_persist_session(self, settings_factory):
        settings = settings_factory(no_persist=True)
        store = create_state_store(settings)
        assert isinstance(store, DisabledStateStore)
        session = QuoteSession.start(settings, store)
        session.add_quotation("Temp")
        assert QuoteSession.start(settings, store).state.quotations[0].name == "Quote 1"

    def test_round_trip_through_file(self, test_settings, file_store):
        session = QuoteSession.start(test_settings, file_store)
        session.rename_quotation(session.state.quotations[0].id, "Kept")
        session.set_tax_pct(5)
        assert file_store.path.name == "batch_calc_mvp_test.json"

        restored = QuoteSession.start(test_settings, file_store)
        assert restored.state.quotations[0].name == "Kept"
        assert restored.state.tax_pct == 5

    def test_save_failure_is_not_raised(self, test_settings, tmp_path):
        from services.state_store import JsonFileStateStore

        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = JsonFileStateStore(str(blocker / "nested"), test_settings.storage_key)
        session = QuoteSession.start(test_settings, store)
        session.add_quotation()
        assert len(session.state.quotations) == 2
