"""Pydantic wire schemas for FHIR ``ValueSet/$expand`` pages.

Only the fields the adapter reads are declared; everything else in the
server payload is ignored.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ExpansionConcept(BaseModel):
    """One ``expansion.contains`` entry."""

    model_config = ConfigDict(extra="ignore")

    code: str
    system: str
    version: str | None = None
    display: str | None = None


class Expansion(BaseModel):
    """``ValueSet.expansion`` paging fields and entries."""

    model_config = ConfigDict(extra="ignore")

    total: int | None = None
    offset: int | None = None
    contains: list[ExpansionConcept] | None = None

    @property
    def page_length(self) -> int:
        return len(self.contains or [])

    def next_offset(self, requested: int) -> int | None:
        """Offset of the following page, or None if this page is the last.

        Counts from the offset that was requested; the echoed ``offset``
        field is not trusted. An empty page always ends the expansion.
        """
        if self.total is None or not self.page_length:
            return None
        following = requested + self.page_length
        return following if self.total > following else None


class ExpansionPage(BaseModel):
    """A single ``$expand`` response page."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    resource_type: str | None = Field(default=None, alias="resourceType")
    id: str | None = None
    version: str | None = None
    title: str | None = None
    expansion: Expansion | None = None
