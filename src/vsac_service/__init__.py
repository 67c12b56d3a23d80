"""Resolve VSAC value set identifiers to clinical codes with a local cache.

Example usage::

    from vsac_service import CodeService, Credential

    async with CodeService(cache_dir="vsac_cache", load_from_cache=True) as service:
        await service.ensure_value_sets(
            [{"name": "Current Tobacco Smoker", "id": "2.16.840.1.113883.3.600.2390"}],
            Credential(api_key="..."),
        )
        value_set = service.find_value_set("2.16.840.1.113883.3.600.2390")
"""

from vsac_service.code_systems import CodeSystemPolicy
from vsac_service.config import VsacConfig
from vsac_service.errors import (
    AuthenticationError,
    ConfigurationError,
    DownloadError,
    NetworkError,
    PersistenceError,
    ProtocolError,
    ValueSetDownloadError,
    VsacError,
)
from vsac_service.identifiers import normalize
from vsac_service.models import Code, Credential, ValueSet, ValueSetRequest
from vsac_service.service import CodeService
from vsac_service.store import ValueSetStore, string_version_key

__all__ = [
    "AuthenticationError",
    "Code",
    "CodeService",
    "CodeSystemPolicy",
    "ConfigurationError",
    "Credential",
    "DownloadError",
    "NetworkError",
    "PersistenceError",
    "ProtocolError",
    "ValueSet",
    "ValueSetDownloadError",
    "ValueSetRequest",
    "ValueSetStore",
    "VsacConfig",
    "VsacError",
    "normalize",
    "string_version_key",
]
