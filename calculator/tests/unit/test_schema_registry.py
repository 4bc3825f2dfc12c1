"""Unit tests for the Schema Registry."""

from models.schema import Machine
from services.schema_builder import build_job_types
from services.schema_registry import SchemaRegistry
from tests.fixtures.mock_source_rows import JOB_X_ROWS, MIXED_JOB_ROWS


class TestPlaceholders:

    def test_seeded_with_placeholders(self, registry):
        assert [jt.id for jt in registry.job_types] == ["jobA"]
        assert [m.id for m in registry.machines] == ["mA"]
        assert registry.first_machine.name == "Machine A"

    def test_placeholder_job_type_fields(self, registry):
        job_a = registry.first_job_type
        assert job_a.field_keys() == ["units", "costA"]
        assert job_a.get_field("units").default == 1
        assert job_a.get_field("costA").label == "Cost A (per unit)"
        assert job_a.get_field("costA").step == 0.01

    def test_empty_initial_lists_use_placeholders(self):
        reg = SchemaRegistry(job_types=[], machines=[])
        assert reg.first_job_type.id == "jobA"
        assert reg.first_machine.id == "mA"


class TestLookups:

    def test_job_type_by_id(self):
        reg = SchemaRegistry(job_types=build_job_types(MIXED_JOB_ROWS))
        assert reg.job_type_by_id("engraving").id == "engraving"

    def test_unknown_ids_fall_back_to_first(self):
        reg = SchemaRegistry(
            job_types=build_job_types(MIXED_JOB_ROWS),
            machines=[Machine(id="m1", name="Lathe"), Machine(id="m2", name="Mill")],
        )
        assert reg.job_type_by_id("gone").id == "printing"
        assert reg.job_type_by_id(None).id == "printing"
        assert reg.machine_by_id("m2").name == "Mill"
        assert reg.machine_by_id("m9").id == "m1"

    def test_has_job_type(self, job_x_registry):
        assert job_x_registry.has_job_type("jobX")
        assert not job_x_registry.has_job_type("jobA")


class TestReplacement:

    def test_replace_job_types(self, registry):
        assert registry.replace_job_types(build_job_types(JOB_X_ROWS)) is True
        assert [jt.id for jt in registry.job_types] == ["jobX"]

    def test_empty_replacement_is_refused(self, registry):
        before = registry.job_types
        assert registry.replace_job_types([]) is False
        assert registry.job_types == before

    def test_replace_machines(self, registry):
        assert registry.replace_machines([Machine(id="m1", name="Lathe")]) is True
        assert registry.first_machine.id == "m1"
        assert registry.replace_machines([]) is False
        assert registry.first_machine.id == "m1"

    def test_collections_are_immutable_snapshots(self, registry):
        snapshot = registry.machines
        registry.replace_machines([Machine(id="m1", name="Lathe")])
        assert [m.id for m in snapshot] == ["mA"]
