"""VSAC protocol adapters.

- SvsAdapter: legacy ticket-based SVS ``RetrieveValueSet`` (XML).
- FhirAdapter: FHIR ``ValueSet/$expand`` with pagination (JSON).

Both share the BaseValueSetAdapter.fetch interface and return a
normalized FetchResult.
"""

from vsac_service.adapters.base import BaseValueSetAdapter
from vsac_service.adapters.fhir import FhirAdapter
from vsac_service.adapters.svs import SvsAdapter, parse_svs_xml

__all__ = [
    "BaseValueSetAdapter",
    "FhirAdapter",
    "SvsAdapter",
    "parse_svs_xml",
]
