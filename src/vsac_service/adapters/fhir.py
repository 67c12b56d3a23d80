"""VSAC FHIR adapter (``ValueSet/<oid>/$expand``, paginated JSON).

Authenticates every request with HTTP Basic ``apikey:<key>``. Pages are
followed while ``total > requested offset + len(contains)``; the value set
id/version come from the first page and the codes from all pages.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from vsac_service.adapters.base import BaseValueSetAdapter, version_label
from vsac_service.cache import ResponseCache
from vsac_service.errors import ProtocolError
from vsac_service.models import Code, Credential, FetchResult
from vsac_service.schemas import ExpansionPage

logger = logging.getLogger(__name__)


def parse_page(data: Any) -> ExpansionPage:
    if not isinstance(data, dict):
        raise ProtocolError(f"Expected a JSON object, got {type(data).__name__}")
    try:
        return ExpansionPage.model_validate(data)
    except ValidationError as exc:
        raise ProtocolError(f"Invalid $expand page: {exc}") from exc


def codes_from_pages(pages: list[ExpansionPage]) -> list[Code]:
    return [
        Code(c.code, c.system, c.version)
        for page in pages
        if page.expansion is not None and page.expansion.contains
        for c in page.expansion.contains
    ]


class FhirAdapter(BaseValueSetAdapter):
    """Paginated FHIR ``$expand`` adapter."""

    name = "FHIR"

    async def fetch(
        self,
        credential: Credential,
        oid: str,
        version: str | None = None,
        cache: ResponseCache | None = None,
    ) -> FetchResult | None:
        raw_pages, pages = await self._get_pages(credential, oid, version)
        if not pages:
            logger.info("ValueSet %s%s: server returned no expansion", oid, version_label(version))
            return None

        first = pages[0]
        if not first.id or first.version is None:
            raise ProtocolError(f"ValueSet {oid}: first page lacks id or version")

        result = FetchResult(oid=first.id, version=first.version, codes=codes_from_pages(pages))
        if cache is not None:
            cache.write_raw_json(oid, raw_pages)
        return result

    async def _get_pages(
        self, credential: Credential, oid: str, version: str | None
    ) -> tuple[list[Any], list[ExpansionPage]]:
        raw_pages: list[Any] = []
        pages: list[ExpansionPage] = []
        offset = 0
        while True:
            raw = await self._get_page(credential, oid, version, offset)
            page = parse_page(raw) if raw is not None else None
            if page is None or page.expansion is None:
                if pages:
                    raise ProtocolError(
                        f"ValueSet {oid}: page at offset {offset} has no expansion"
                    )
                return [], []

            raw_pages.append(raw)
            pages.append(page)
            next_offset = page.expansion.next_offset(offset)
            if next_offset is None:
                return raw_pages, pages
            offset = next_offset

    async def _get_page(
        self, credential: Credential, oid: str, version: str | None, offset: int
    ) -> Any:
        logger.debug("Getting ValueSet: %s%s (offset: %d)", oid, version_label(version), offset)
        params: dict[str, str | int] = {"offset": offset}
        if version is not None:
            params["valueSetVersion"] = version
        url = f"{self.config.fhir_url.rstrip('/')}/ValueSet/{oid}/$expand"
        response = await self._request("GET", url, params=params, auth=credential.basic_auth())
        if not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as exc:
            # JSONDecodeError or UnicodeDecodeError
            raise ProtocolError(f"ValueSet {oid}: response is not JSON") from exc
