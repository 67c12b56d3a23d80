"""Code system OID to canonical URI resolution.

The lookup table lives in ``config/code_systems.yaml`` next to this package
so new systems can be added without touching code.
"""

from __future__ import annotations

import enum
import logging
from functools import lru_cache
from pathlib import Path

import yaml

from vsac_service.models import Code

logger = logging.getLogger(__name__)

_DEFAULT_TABLE_PATH = Path(__file__).parent / "config" / "code_systems.yaml"


class CodeSystemPolicy(str, enum.Enum):
    """How SVS code system OIDs are rendered in the resulting codes.

    REPLACE: canonical URI when known, else ``urn:oid:<oid>``.
    INCLUDE: canonical-URI code (when known) plus the ``urn:oid:`` code.
    OMIT: always ``urn:oid:<oid>``.
    """

    REPLACE = "replace"
    INCLUDE = "include"
    OMIT = "omit"


@lru_cache(maxsize=None)
def load_code_system_table(path: Path = _DEFAULT_TABLE_PATH) -> dict[str, str]:
    """Load the ``oid -> uri`` table from YAML."""
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    systems = raw.get("code_systems", {})
    table = {
        str(oid): entry["uri"]
        for oid, entry in systems.items()
        if isinstance(entry, dict) and entry.get("uri")
    }
    logger.debug("Loaded %d code system URIs from %s", len(table), path)
    return table


def oid_system(oid: str) -> str:
    return f"urn:oid:{oid}"


class CodeSystemResolver:
    """Turn SVS ``(code, codeSystem, codeSystemVersion)`` into ``Code``s."""

    def __init__(
        self,
        policy: CodeSystemPolicy | str = CodeSystemPolicy.REPLACE,
        table: dict[str, str] | None = None,
    ) -> None:
        self.policy = CodeSystemPolicy(policy)
        self.table = table if table is not None else load_code_system_table()

    def uri_for(self, system_oid: str) -> str | None:
        return self.table.get(system_oid)

    def codes_for(self, code: str, system_oid: str, version: str | None) -> list[Code]:
        fallback = Code(code, oid_system(system_oid), version)
        if self.policy is CodeSystemPolicy.OMIT:
            return [fallback]

        uri = self.uri_for(system_oid)
        if self.policy is CodeSystemPolicy.REPLACE:
            return [Code(code, uri, version)] if uri else [fallback]

        # INCLUDE
        if uri:
            return [Code(code, uri, version), fallback]
        return [fallback]
