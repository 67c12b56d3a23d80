"""Test helpers: fixture files, mock transports and FHIR page builders."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from urllib.parse import parse_qs

import httpx

FIXTURES = Path(__file__).parent / "fixtures"

TOBACCO_OID = "2.16.840.1.113883.3.600.2390"
SYSTOLIC_OID = "2.16.840.1.113883.3.526.3.1032"
LDL_OID = "2.16.840.1.113883.3.464.1003.104.12.1013"
DIABETES_OID = "2.16.840.1.113883.3.526.3.1010"


def fixture_text(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


def form_body(request: httpx.Request) -> dict[str, str]:
    """Decode a form-encoded request body into a flat dict."""
    parsed = parse_qs(request.content.decode())
    return {k: v[0] for k, v in parsed.items()}


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def expansion_page(
    oid: str,
    version: str,
    codes: list[str],
    offset: int = 0,
    total: int | None = None,
    system: str = "http://loinc.org",
) -> dict:
    """Build a FHIR ``$expand`` page with ``codes`` as its contains list."""
    return {
        "resourceType": "ValueSet",
        "id": oid,
        "version": version,
        "title": f"Value set {oid}",
        "expansion": {
            "total": total if total is not None else offset + len(codes),
            "offset": offset,
            "contains": [{"code": c, "system": system, "version": "2.68"} for c in codes],
        },
    }


def json_response(data: object, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, text=json.dumps(data))
