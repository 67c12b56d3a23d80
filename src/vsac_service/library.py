"""Collect value set references from ELM JSON libraries.

An ELM library declares its value sets under ``library.valueSets.def`` and
its dependencies under ``library.includes.def``. Included libraries are
looked up by ``path`` in a caller-supplied mapping.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from vsac_service.models import ValueSetRequest

logger = logging.getLogger(__name__)


def _library_body(library: Mapping[str, Any]) -> Mapping[str, Any]:
    body = library.get("library", library)
    return body if isinstance(body, Mapping) else {}


def _defs(body: Mapping[str, Any], section: str) -> list[Mapping[str, Any]]:
    entries = (body.get(section) or {}).get("def") or []
    return [e for e in entries if isinstance(e, Mapping)]


def _library_name(body: Mapping[str, Any]) -> str:
    identifier = body.get("identifier") or {}
    name = identifier.get("id", "<anonymous>")
    version = identifier.get("version")
    return f"{name}|{version}" if version else str(name)


def extract_value_set_requests(
    library: Mapping[str, Any],
    check_included: bool = True,
    libraries: Mapping[str, Mapping[str, Any]] | None = None,
) -> list[ValueSetRequest]:
    """Value sets referenced by ``library`` and, optionally, its includes.

    Args:
        library: ELM JSON (with or without the outer ``library`` key).
        check_included: Also walk included libraries.
        libraries: Included libraries keyed by their include ``path``.

    Returns:
        De-duplicated requests in discovery order.
    """
    libraries = libraries or {}
    seen_libraries: set[int] = set()
    requests: dict[tuple[str, str | None], ValueSetRequest] = {}

    def visit(lib: Mapping[str, Any]) -> None:
        body = _library_body(lib)
        if id(body) in seen_libraries:
            return
        seen_libraries.add(id(body))
        name = _library_name(body)

        for vs in _defs(body, "valueSets"):
            if not vs.get("id"):
                continue
            request = ValueSetRequest(
                name=str(vs.get("name", "")), id=vs["id"], version=vs.get("version")
            )
            requests.setdefault((request.id, request.version), request)

        if not check_included:
            return
        for include in _defs(body, "includes"):
            path = include.get("path")
            included = libraries.get(path) if path else None
            if included is None:
                logger.warning("Included library %s of %s not supplied; skipping", path, name)
                continue
            visit(included)

    visit(library)
    return list(requests.values())
