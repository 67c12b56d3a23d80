"""Core value types shared by the store, adapters and orchestrator."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from vsac_service.errors import VsacError


@dataclass(frozen=True)
class Code:
    """A single clinical code.

    Attributes:
        code: Code value (e.g., "2093-3").
        system: Code system URI or ``urn:oid:`` identifier.
        version: Code system version, if known.
    """

    code: str
    system: str
    version: str | None = None

    def to_dict(self) -> dict[str, str]:
        data = {"code": self.code, "system": self.system}
        if self.version is not None:
            data["version"] = self.version
        return data


@dataclass
class ValueSet:
    """A versioned collection of codes identified by OID."""

    oid: str
    version: str
    codes: list[Code] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "oid": self.oid,
            "version": self.version,
            "codes": [c.to_dict() for c in self.codes],
        }


@dataclass(frozen=True)
class ValueSetRequest:
    """A caller's reference to a value set.

    Attributes:
        name: Descriptive name only; never used for lookup.
        id: OID, ``urn:oid:`` URN or VSAC FHIR URL.
        version: Optional explicit version; overrides a URL-embedded one.
    """

    name: str
    id: str
    version: str | None = None

    @classmethod
    def coerce(cls, value: "ValueSetRequest | Mapping[str, Any]") -> "ValueSetRequest":
        """Accept either a request or a ``{name, id, version}`` mapping."""
        if isinstance(value, ValueSetRequest):
            return value
        return cls(
            name=str(value.get("name", "")),
            id=value["id"],
            version=value.get("version"),
        )


@dataclass(frozen=True)
class Credential:
    """UMLS credential: an API key, or a legacy username/password pair."""

    api_key: str | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)

    @property
    def is_complete(self) -> bool:
        return bool(self.api_key) or bool(self.username and self.password)

    def basic_auth(self) -> tuple[str, str]:
        """HTTP Basic credentials as VSAC expects them."""
        if self.api_key:
            return ("apikey", self.api_key)
        return (self.username or "", self.password or "")

    def ticket_form(self) -> dict[str, str]:
        """Form body for the ticket-granting-ticket request."""
        if self.api_key:
            return {"apikey": self.api_key}
        return {"username": self.username or "", "password": self.password or ""}

    @classmethod
    def from_env(cls) -> "Credential":
        """Build a credential from UMLS_API_KEY or UMLS_USER_NAME/UMLS_PASSWORD."""
        return cls(
            api_key=os.getenv("UMLS_API_KEY") or None,
            username=os.getenv("UMLS_USER_NAME") or None,
            password=os.getenv("UMLS_PASSWORD") or None,
        )


@dataclass
class FetchResult:
    """Normalized adapter output, keyed by the server-confirmed oid/version."""

    oid: str
    version: str
    codes: list[Code]

    def to_value_set(self) -> ValueSet:
        return ValueSet(self.oid, self.version, list(self.codes))


@dataclass
class DownloadOutcome:
    """Result of one isolated adapter call within a batch."""

    oid: str
    version: str | None
    result: FetchResult | None = None
    error: VsacError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
