"""CodeService: value set lookup with on-demand download from VSAC.

Lookups (``find_value_sets`` / ``find_value_set``) only read the in-memory
store. ``ensure_value_sets`` plans and runs downloads for whatever the store
lacks:

1. Reject immediately (``ConfigurationError``) without a usable credential.
2. Normalize each request and drop the ones the store already satisfies.
3. Create the cache directory when caching.
4. Launch one adapter call per missing (oid, version) with asyncio.gather;
   each call captures its own outcome so failures never cancel siblings.
5. Merge every success, then write ``valueset-db.json`` when caching.
6. Raise ``ValueSetDownloadError`` listing every failed item (and any
   snapshot write error). Successes stay merged and persisted.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from vsac_service.adapters import BaseValueSetAdapter, FhirAdapter, SvsAdapter
from vsac_service.adapters.base import version_label
from vsac_service.cache import ResponseCache
from vsac_service.config import VsacConfig
from vsac_service.errors import (
    ConfigurationError,
    DownloadError,
    PersistenceError,
    ValueSetDownloadError,
    VsacError,
)
from vsac_service.identifiers import normalize, resolve_version
from vsac_service.library import extract_value_set_requests
from vsac_service.models import Credential, DownloadOutcome, ValueSet, ValueSetRequest
from vsac_service.store import ValueSetStore

logger = logging.getLogger(__name__)

RequestLike = ValueSetRequest | Mapping[str, Any]


class CodeService:
    """Value set store backed by VSAC downloads.

    Args:
        cache_dir: Directory for ``valueset-db.json`` and raw responses.
            Defaults to ``config.cache_dir``.
        load_from_cache: Load ``<cache_dir>/valueset-db.json`` on construction.
        use_fhir: Pick the FHIR adapter instead of SVS. Defaults to
            ``config.use_fhir``. Ignored when ``adapter`` is given.
        config: Endpoint/transport settings; ``VsacConfig()`` if omitted.
        adapter: Pre-built adapter (e.g. a stub in tests).
        store: Pre-built store; a fresh one if omitted.
    """

    def __init__(
        self,
        cache_dir: Path | str | None = None,
        load_from_cache: bool = False,
        use_fhir: bool | None = None,
        config: VsacConfig | None = None,
        adapter: BaseValueSetAdapter | None = None,
        store: ValueSetStore | None = None,
    ) -> None:
        self.config = config or VsacConfig()
        self.cache = ResponseCache(cache_dir or self.config.cache_dir)
        if adapter is None:
            fhir = self.config.use_fhir if use_fhir is None else use_fhir
            adapter = FhirAdapter(self.config) if fhir else SvsAdapter(self.config)
        self.api = adapter
        self.value_sets = store if store is not None else ValueSetStore()

        if load_from_cache:
            self.cache.load_snapshot(self.value_sets)

    async def __aenter__(self) -> "CodeService":
        return self

    async def __aexit__(self, _exc_type: object, _exc: object, _tb: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.api.aclose()

    # -- Lookup --------------------------------------------------------------

    def load_value_sets_from_file(self, path: Path | str) -> None:
        """Add value sets from a snapshot file; a missing file is ignored."""
        self.value_sets.load(path)

    def find_value_sets(self, identifier: str | None, version: str | None = None) -> list[ValueSet]:
        """All loaded versions of a value set (OID, URN or VSAC FHIR URL)."""
        return self.value_sets.find_all(identifier, version)

    def find_value_set(self, identifier: str | None, version: str | None = None) -> ValueSet | None:
        """The matching value set, preferring the greatest version string."""
        return self.value_sets.find_best(identifier, version)

    # -- Download ------------------------------------------------------------

    async def ensure_value_sets(
        self,
        value_set_list: Iterable[RequestLike] = (),
        credential: Credential | None = None,
        caching: bool = True,
    ) -> None:
        """Make sure every requested value set has a local definition.

        Args:
            value_set_list: Requests or ``{name, id, version}`` mappings.
            credential: UMLS API key or username/password.
            caching: Persist raw responses and the store snapshot.

        Raises:
            ConfigurationError: No usable credential; nothing else was done.
            ValueSetDownloadError: One or more items failed. Items that
                succeeded are merged (and persisted) regardless.
        """
        if credential is None or not credential.is_complete:
            raise ConfigurationError(
                "Failed to download value sets since no UMLS credential is set."
            )

        requests = [ValueSetRequest.coerce(v) for v in value_set_list]
        pending = self._plan(requests)
        if not pending:
            logger.debug("All %d requested value set(s) already loaded", len(requests))
            return

        cache = self.cache if caching else None
        if cache is not None:
            try:
                cache.ensure_dir()
            except PersistenceError as exc:
                raise ValueSetDownloadError([exc]) from exc

        logger.info("Downloading %d value set(s) via %s", len(pending), self.api.name)
        try:
            outcomes = await self._dispatch(pending, credential, cache)
        finally:
            await self.api.end_batch()

        errors = self._merge_outcomes(outcomes)
        merged = sum(1 for o in outcomes if o.ok and o.result is not None)
        if cache is not None and merged:
            try:
                cache.write_snapshot(self.value_sets)
            except PersistenceError as exc:
                errors.append(exc)

        if errors:
            logger.warning(
                "%d of %d value set download(s) failed", len(errors), len(outcomes)
            )
            raise ValueSetDownloadError(errors)
        logger.info("Downloaded %d value set(s)", merged)

    async def ensure_value_sets_in_library(
        self,
        library: Mapping[str, Any],
        credential: Credential | None = None,
        check_included: bool = True,
        libraries: Mapping[str, Mapping[str, Any]] | None = None,
        caching: bool = True,
    ) -> None:
        """``ensure_value_sets`` for every value set an ELM library references."""
        requests = extract_value_set_requests(library, check_included, libraries)
        await self.ensure_value_sets(requests, credential, caching)

    # -- Internal ------------------------------------------------------------

    def _plan(self, requests: list[ValueSetRequest]) -> list[tuple[str, str | None]]:
        """Missing (oid, version) pairs, de-duplicated, in request order."""
        pending: dict[tuple[str, str | None], None] = {}
        for request in requests:
            oid, embedded = normalize(request.id)
            if oid is None:
                logger.warning("Value set %r has no identifier; skipping", request.name)
                continue
            version = resolve_version(request.version, embedded)
            if self.value_sets.has(oid, version):
                continue
            pending.setdefault((oid, version), None)
        return list(pending)

    async def _dispatch(
        self,
        pending: list[tuple[str, str | None]],
        credential: Credential,
        cache: ResponseCache | None,
    ) -> list[DownloadOutcome]:
        limit = self.config.max_concurrency
        semaphore = asyncio.Semaphore(limit) if limit else None
        tasks = [
            self._download_one(oid, version, credential, cache, semaphore)
            for oid, version in pending
        ]
        return list(await asyncio.gather(*tasks))

    async def _download_one(
        self,
        oid: str,
        version: str | None,
        credential: Credential,
        cache: ResponseCache | None,
        semaphore: asyncio.Semaphore | None,
    ) -> DownloadOutcome:
        """Run one adapter call, capturing the result or the error."""
        try:
            async with semaphore or contextlib.nullcontext():
                result = await self.api.fetch(credential, oid, version, cache)
        except Exception as e:
            logger.error(
                "Error downloading valueset %s%s: %s", oid, version_label(version), e
            )
            return DownloadOutcome(oid, version, error=DownloadError(oid, version, e))
        return DownloadOutcome(oid, version, result=result)

    def _merge_outcomes(self, outcomes: list[DownloadOutcome]) -> list[VsacError]:
        errors: list[VsacError] = []
        for outcome in outcomes:
            if outcome.error is not None:
                errors.append(outcome.error)
            elif outcome.result is not None:
                value_set = outcome.result.to_value_set()
                self.value_sets.merge(value_set.oid, value_set.version, value_set)
        return errors
