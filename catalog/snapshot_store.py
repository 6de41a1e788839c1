"""
JSON file store for per-collection snapshots.
Handles loading with a safe empty baseline and atomic per-key overwrites.
"""

import contextlib
import json
import os
from pathlib import Path
from typing import Any, Dict, Union

import structlog
from pydantic import ValidationError

from utilities.exceptions import PersistFailure
from .models import Snapshot

logger = structlog.get_logger(__name__)


class SnapshotStore:
    """
    Keyed snapshot document on disk.

    The file holds one record per collection key. Saving a key rewrites the
    whole document through a temporary file and ``os.replace``, so a reader
    never sees a half-written record and records of other keys are kept.
    """

    def __init__(self, path: Union[str, Path]):
        """
        Initialize snapshot store.

        Args:
            path: Location of the JSON state file
        """
        self.path = Path(path)
        self.logger = logger.bind(component="snapshot_store", path=str(self.path))

    def load(self, collection_key: str) -> Snapshot:
        """
        Load the last persisted snapshot for a collection.

        Args:
            collection_key: Tracked collection key

        Returns:
            Stored snapshot, or the empty baseline if absent or unreadable
        """
        document = self._read_document()
        record = document.get(collection_key)
        if record is None:
            self.logger.debug("No snapshot stored yet", collection=collection_key)
            return Snapshot.empty()

        try:
            return Snapshot.model_validate(record)
        except ValidationError as e:
            self.logger.warning(
                "Stored snapshot is invalid, using empty baseline",
                collection=collection_key,
                error=str(e)
            )
            return Snapshot.empty()

    def load_all(self) -> Dict[str, Snapshot]:
        """Load every valid snapshot in the document."""
        snapshots = {}
        for key in self._read_document():
            snapshots[key] = self.load(key)
        return snapshots

    def save(self, collection_key: str, snapshot: Snapshot) -> None:
        """
        Replace the snapshot stored for a collection.

        Args:
            collection_key: Tracked collection key
            snapshot: Snapshot superseding any previous record

        Raises:
            PersistFailure: If the state file cannot be written
        """
        document = self._read_document()
        document[collection_key] = snapshot.to_record()

        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            self.logger.error(
                "Failed to save snapshot",
                collection=collection_key,
                error=str(e)
            )
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            raise PersistFailure(collection_key, str(e)) from e

        self.logger.debug(
            "Snapshot saved",
            collection=collection_key,
            total_items=snapshot.total_items,
            items=len(snapshot.items)
        )

    def _read_document(self) -> Dict[str, Any]:
        """Read the whole state document, treating any failure as empty."""
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning("Failed to load snapshot file, using empty baseline", error=str(e))
            return {}

        if not isinstance(document, dict):
            self.logger.warning(
                "Snapshot file has unexpected layout, using empty baseline",
                type=type(document).__name__
            )
            return {}
        return document
