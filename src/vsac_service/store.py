"""In-memory value set store: ``oid -> version -> ValueSet``.

The store only grows. Lookups accept any identifier form understood by
``identifiers.normalize``. "Most recent" selection goes through a single
ordering function so a stricter policy can replace the string comparison.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

from vsac_service.errors import ProtocolError
from vsac_service.identifiers import normalize, resolve_version
from vsac_service.models import Code, ValueSet

logger = logging.getLogger(__name__)

VersionKey = Callable[[str], Any]


def string_version_key(version: str) -> str:
    """Plain string ordering: ``"20200401" > "20170320"``, ``"9" > "10"``."""
    return version


class ValueSetStore:
    """Mapping of oid to version to ValueSet, owned by one ``CodeService``."""

    def __init__(self, version_key: VersionKey = string_version_key) -> None:
        self._value_sets: dict[str, dict[str, ValueSet]] = {}
        self._version_key = version_key

    def __len__(self) -> int:
        return sum(len(versions) for versions in self._value_sets.values())

    def __iter__(self) -> Iterator[ValueSet]:
        for versions in self._value_sets.values():
            yield from versions.values()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValueSetStore):
            return NotImplemented
        return self._value_sets == other._value_sets

    # -- Loading -------------------------------------------------------------

    def load(self, path: Path | str) -> None:
        """Add value sets from a ``valueset-db.json`` snapshot.

        Does nothing if the file does not exist.

        Raises:
            json.JSONDecodeError: If the file is not valid JSON.
            ProtocolError: If an entry lacks its ``codes`` list.
        """
        path = Path(path).resolve()
        if not path.exists():
            logger.debug("No value set snapshot at %s", path)
            return

        data = json.loads(path.read_text(encoding="utf-8"))
        self.load_dict(data)
        logger.info("Loaded %d value set version(s) from %s", len(self), path)

    def load_dict(self, data: dict[str, Any]) -> None:
        if not isinstance(data, dict):
            raise ProtocolError("Value set snapshot must be a JSON object")
        for oid, versions in data.items():
            if not isinstance(versions, dict):
                raise ProtocolError(f"Value set {oid}: expected a version mapping")
            for version, entry in versions.items():
                try:
                    codes = [
                        Code(c["code"], c["system"], c.get("version"))
                        for c in entry["codes"]
                    ]
                except (KeyError, TypeError) as exc:
                    raise ProtocolError(
                        f"Value set {oid} version {version}: malformed codes"
                    ) from exc
                self._value_sets.setdefault(oid, {})[version] = ValueSet(
                    oid, version, codes
                )

    # -- Lookup --------------------------------------------------------------

    def find_all(self, identifier: str | None, version: str | None = None) -> list[ValueSet]:
        """Every stored ValueSet for the identifier, optionally one version.

        Results keep the store's insertion order.
        """
        oid, embedded = normalize(identifier)
        if oid is None:
            return []
        version = resolve_version(version, embedded)
        versions = self._value_sets.get(oid, {})
        return [
            vs for found, vs in versions.items() if version is None or found == version
        ]

    def find_best(self, identifier: str | None, version: str | None = None) -> ValueSet | None:
        """The single best match, or None.

        With several versions and no version requested, the greatest under
        the store's version key wins.
        """
        results = self.find_all(identifier, version)
        if not results:
            return None
        if len(results) == 1:
            return results[0]
        return max(results, key=lambda vs: self._version_key(vs.version))

    def has(self, oid: str, version: str | None = None) -> bool:
        """True if any stored version matches (all versions when ``version`` is None)."""
        return bool(self.find_all(oid, version))

    # -- Mutation ------------------------------------------------------------

    def merge(self, oid: str, version: str, value_set: ValueSet) -> None:
        """Insert or replace the value set stored at ``(oid, version)``."""
        if value_set.oid != oid or value_set.version != version:
            raise ValueError(
                f"ValueSet {value_set.oid}|{value_set.version} "
                f"cannot be stored under {oid}|{version}"
            )
        self._value_sets.setdefault(oid, {})[version] = value_set

    def to_dict(self) -> dict[str, dict[str, dict[str, Any]]]:
        """Snapshot structure written to ``valueset-db.json``."""
        return {
            oid: {version: vs.to_dict() for version, vs in versions.items()}
            for oid, versions in self._value_sets.items()
        }
