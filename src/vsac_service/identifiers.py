"""Value set identifier normalization.

Accepts a bare OID, a ``urn:oid:`` URN, or a VSAC FHIR ValueSet URL (http or
https) with an optional ``|version`` suffix. Normalization never raises;
anything unrecognised is treated as an opaque OID.

Only the VSAC host ``cts.nlm.nih.gov`` is recognised in URLs. A ValueSet URL
on any other terminology server is kept whole as an opaque identifier.
"""

from __future__ import annotations

import re

_VSAC_FHIR_URL = re.compile(
    r"^https?://cts\.nlm\.nih\.gov/fhir/ValueSet/([^|]+)(?:\|(.+))?$"
)
_URN_OID = re.compile(r"^urn:oid:(.+)$")


def normalize(identifier: str | None) -> tuple[str | None, str | None]:
    """Split an identifier into ``(oid, embedded_version)``.

    Only the FHIR URL form can carry a version. ``None`` or an empty string
    yields ``(None, None)``, meaning no lookup is possible.
    """
    if not identifier:
        return None, None

    match = _VSAC_FHIR_URL.match(identifier)
    if match:
        return match.group(1), match.group(2)

    match = _URN_OID.match(identifier)
    if match:
        return match.group(1), None

    return identifier, None


def resolve_version(explicit: str | None, embedded: str | None) -> str | None:
    """Explicit version argument wins over a URL-embedded one."""
    return explicit if explicit is not None else embedded
