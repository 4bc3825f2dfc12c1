"""Snapshot stores for the global state.

The session writes the whole state snapshot after every mutation and
reads it once at startup. ``JsonFileStateStore`` keeps it in a JSON file
named after the versioned storage key; ``DisabledStateStore`` is used for
ephemeral (no persist) sessions and skips both reads and writes.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

from config.errors import ErrorCode, PersistenceError
from config.settings import Settings

logger = structlog.get_logger()


class DisabledStateStore:
    """Store that never reads or writes."""

    enabled = False

    def load(self) -> Optional[Dict[str, Any]]:
        return None

    def save(self, snapshot: Dict[str, Any]) -> None:
        return None


class JsonFileStateStore:
    """Store the snapshot as ``<directory>/<storage_key>.json``."""

    enabled = True

    def __init__(self, directory: str, storage_key: str):
        """Initialize JsonFileStateStore.

        Args:
            directory: Directory holding snapshot files (created on first save)
            storage_key: Versioned key; a new version starts from a clean state
        """
        self.path = Path(directory) / f"{storage_key}.json"

    def load(self) -> Optional[Dict[str, Any]]:
        """Read the snapshot.

        Returns:
            Snapshot dict, or None if there is none.

        Raises:
            PersistenceError: If the file exists but cannot be read or parsed.
        """
        if not self.path.exists():
            return None
        try:
            with open(self.path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(
                code=ErrorCode.PERSISTENCE_READ_FAILED,
                message=f"Failed to read state snapshot: {e}",
                path=str(self.path),
            )

    def save(self, snapshot: Dict[str, Any]) -> None:
        """Write the snapshot atomically (temp file + rename).

        Raises:
            PersistenceError: If the snapshot cannot be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".snapshot-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(snapshot, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(
                code=ErrorCode.PERSISTENCE_WRITE_FAILED,
                message=f"Failed to write state snapshot: {e}",
                path=str(self.path),
            )
        logger.debug("state_snapshot_saved", path=str(self.path))


def create_state_store(settings: Settings):
    """Store selected by configuration (disabled when NO_PERSIST is set)."""
    if settings.no_persist:
        logger.info("state_persistence_disabled")
        return DisabledStateStore()
    return JsonFileStateStore(settings.state_dir, settings.storage_key)
