"""Runtime configuration for the value set service.

``VsacConfig`` holds endpoints, transport and cache settings. This directory
also ships ``code_systems.yaml`` (code system OID -> canonical URI table).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_cache_dir

from vsac_service.code_systems import CodeSystemPolicy

logger = logging.getLogger(__name__)

VSAC_SVS_URL = "https://vsac.nlm.nih.gov/vsac/svs/RetrieveValueSet"
VSAC_TICKET_URL = "https://vsac.nlm.nih.gov/vsac/ws/Ticket"
VSAC_FHIR_URL = "https://cts.nlm.nih.gov/fhir"
UMLS_SERVICE_NAME = "http://umlsks.nlm.nih.gov"


def _default_cache_dir() -> Path:
    return Path(user_cache_dir("vsac-service"))


def _env_int(name: str, default: int | None, minimum: int = 1) -> int | None:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", name, raw)
        return default
    return value if value >= minimum else default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", name, raw)
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class VsacConfig:
    """Configuration for VSAC access and local caching.

    Attributes:
        svs_url: SVS RetrieveValueSet endpoint.
        ticket_url: Ticket-granting endpoint for the legacy protocol.
        service_name: Service the service ticket is requested for.
        fhir_url: FHIR terminology base URL (``.../fhir``).
        timeout: HTTP timeout in seconds.
        cache_dir: Directory for ``valueset-db.json`` and raw responses.
        code_system_policy: SVS code system rendering policy.
        use_fhir: Use the paginated FHIR adapter instead of SVS.
        max_concurrency: Cap on in-flight downloads per batch (None = no cap).
        max_attempts: Transport attempts per HTTP request (1 = no retry).
    """

    svs_url: str = VSAC_SVS_URL
    ticket_url: str = VSAC_TICKET_URL
    service_name: str = UMLS_SERVICE_NAME
    fhir_url: str = VSAC_FHIR_URL
    timeout: float = 30.0
    cache_dir: Path = field(default_factory=_default_cache_dir)
    code_system_policy: CodeSystemPolicy = CodeSystemPolicy.REPLACE
    use_fhir: bool = False
    max_concurrency: int | None = None
    max_attempts: int = 1

    @classmethod
    def from_env(cls) -> "VsacConfig":
        """Create VsacConfig from ``VSAC_*`` environment variables."""
        raw_policy = os.getenv("VSAC_CODE_SYSTEM_POLICY", "").strip().lower()
        try:
            policy = CodeSystemPolicy(raw_policy or CodeSystemPolicy.REPLACE.value)
        except ValueError:
            logger.warning("Ignoring invalid VSAC_CODE_SYSTEM_POLICY=%r", raw_policy)
            policy = CodeSystemPolicy.REPLACE

        cache_dir = os.getenv("VSAC_CACHE_DIR")
        use_fhir = os.getenv("VSAC_USE_FHIR", "").strip().lower() in {"1", "true", "yes"}
        return cls(
            svs_url=os.getenv("VSAC_SVS_URL", VSAC_SVS_URL),
            ticket_url=os.getenv("VSAC_TICKET_URL", VSAC_TICKET_URL),
            fhir_url=os.getenv("VSAC_FHIR_URL", VSAC_FHIR_URL),
            timeout=_env_float("VSAC_TIMEOUT_SECONDS", 30.0),
            cache_dir=Path(cache_dir) if cache_dir else _default_cache_dir(),
            code_system_policy=policy,
            use_fhir=use_fhir,
            max_concurrency=_env_int("VSAC_MAX_CONCURRENCY", None),
            max_attempts=_env_int("VSAC_MAX_ATTEMPTS", 1) or 1,
        )
