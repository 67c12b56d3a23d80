"""Flat-file cache: the store snapshot plus raw per-item server responses."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from vsac_service.errors import PersistenceError
from vsac_service.store import ValueSetStore

logger = logging.getLogger(__name__)

SNAPSHOT_FILENAME = "valueset-db.json"


class ResponseCache:
    """Writes into one cache directory.

    Args:
        cache_dir: Directory holding ``valueset-db.json`` and ``<oid>.xml`` /
            ``<oid>.json`` raw responses.
    """

    def __init__(self, cache_dir: Path | str) -> None:
        self.cache_dir = Path(cache_dir).resolve()

    @property
    def snapshot_path(self) -> Path:
        return self.cache_dir / SNAPSHOT_FILENAME

    def ensure_dir(self) -> None:
        """Create the cache directory; an existing directory is fine."""
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(
                f"Cannot create cache directory {self.cache_dir}: {exc}", self.cache_dir
            ) from exc

    def raw_path(self, oid: str, suffix: str) -> Path:
        return self.cache_dir / f"{oid}.{suffix}"

    def write_raw_text(self, oid: str, suffix: str, data: str) -> Path:
        """Store a raw response body as ``<oid>.<suffix>``."""
        return self._write(self.raw_path(oid, suffix), data)

    def write_raw_json(self, oid: str, data: Any) -> Path:
        return self._write(self.raw_path(oid, "json"), json.dumps(data, indent=2))

    def write_snapshot(self, store: ValueSetStore) -> Path:
        return self._write(self.snapshot_path, json.dumps(store.to_dict(), indent=2))

    def load_snapshot(self, store: ValueSetStore) -> None:
        store.load(self.snapshot_path)

    def _write(self, path: Path, text: str) -> Path:
        """Write via a temp file in the same directory, then ``os.replace``."""
        logger.debug("Writing: %s", path)
        tmp_name: str | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(text)
            os.replace(tmp_name, path)
        except OSError as exc:
            logger.debug("Error writing file %s", path)
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise PersistenceError(f"Error writing {path}: {exc}", path) from exc
        logger.debug("Wrote file %s", path)
        return path
