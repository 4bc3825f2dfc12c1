"""Schema Registry for the batch quote calculator.

Holds the current job types and machines. Lookups fall back to the first
entry so dangling references always resolve; this is the only place that
fallback is decided. Replacement swaps the whole collection at once and
is refused for empty input, so the registry is never empty.
"""

from typing import Iterable, Optional, Tuple

import structlog

from models.schema import JobType, Machine, get_default_job_types, get_default_machines

logger = structlog.get_logger()


class SchemaRegistry:
    """Current job types and machines, seeded with built-in placeholders."""

    def __init__(
        self,
        job_types: Optional[Iterable[JobType]] = None,
        machines: Optional[Iterable[Machine]] = None,
    ):
        """Initialize SchemaRegistry.

        Args:
            job_types: Initial job types; placeholders when empty or None.
            machines: Initial machines; placeholders when empty or None.
        """
        self._job_types: Tuple[JobType, ...] = tuple(job_types or ()) or tuple(get_default_job_types())
        self._machines: Tuple[Machine, ...] = tuple(machines or ()) or tuple(get_default_machines())

    @property
    def job_types(self) -> Tuple[JobType, ...]:
        return self._job_types

    @property
    def machines(self) -> Tuple[Machine, ...]:
        return self._machines

    @property
    def first_job_type(self) -> JobType:
        return self._job_types[0]

    @property
    def first_machine(self) -> Machine:
        return self._machines[0]

    def has_job_type(self, job_type_id: Optional[str]) -> bool:
        return any(jt.id == job_type_id for jt in self._job_types)

    def job_type_by_id(self, job_type_id: Optional[str]) -> JobType:
        """Matching job type, or the first one when nothing matches."""
        for jt in self._job_types:
            if jt.id == job_type_id:
                return jt
        return self._job_types[0]

    def machine_by_id(self, machine_id: Optional[str]) -> Machine:
        """Matching machine, or the first one when nothing matches."""
        for machine in self._machines:
            if machine.id == machine_id:
                return machine
        return self._machines[0]

    def replace_job_types(self, job_types: Iterable[JobType]) -> bool:
        """Swap in a new job type collection.

        Args:
            job_types: Freshly built job types.

        Returns:
            True when the registry was replaced; False for empty input
            (or input whose job types all lack fields).
        """
        usable = tuple(jt for jt in job_types if jt.is_usable)
        if not usable:
            logger.info("job_type_registry_kept", current=len(self._job_types))
            return False
        self._job_types = usable
        logger.info("job_type_registry_replaced", count=len(usable), job_type_ids=[jt.id for jt in usable])
        return True

    def replace_machines(self, machines: Iterable[Machine]) -> bool:
        """Swap in a new machine collection; empty input keeps the current one."""
        new_machines = tuple(machines)
        if not new_machines:
            logger.info("machine_registry_kept", current=len(self._machines))
            return False
        self._machines = new_machines
        logger.info("machine_registry_replaced", count=len(new_machines))
        return True
