"""Legacy VSAC SVS adapter (``RetrieveValueSet``, XML payload).

Ticket flow, per credential:

1. POST ``<ticket_url>`` with the credential, returning a ticket-granting
   ticket (TGT). The TGT is reused for the rest of the batch.
2. POST ``<ticket_url>/<TGT>`` with ``service=<service_name>``, returning a
   single-use service ticket. One per value set.
3. GET ``<svs_url>?id=<oid>[&version=<v>]&ticket=<ST>`` returning XML.

With ``ticket_auth=False`` steps 1-2 are skipped and the GET is sent with
HTTP Basic ``apikey:<key>`` instead.
"""

from __future__ import annotations

import asyncio
import logging

import httpx
from defusedxml import DefusedXmlException
from defusedxml.ElementTree import ParseError, fromstring

from vsac_service.adapters.base import BaseValueSetAdapter, version_label
from vsac_service.cache import ResponseCache
from vsac_service.code_systems import CodeSystemPolicy, CodeSystemResolver
from vsac_service.config import VsacConfig
from vsac_service.errors import AuthenticationError, ProtocolError
from vsac_service.models import Code, Credential, FetchResult

logger = logging.getLogger(__name__)


def parse_svs_xml(xml: str | bytes | None, resolver: CodeSystemResolver) -> FetchResult:
    """Parse a ``RetrieveValueSetResponse`` document.

    The ``ValueSet`` element is located regardless of namespace prefix. Its
    ``ID``/``version`` attributes identify the result and each
    ``ConceptList/Concept`` becomes one or two ``Code``s depending on the
    resolver's policy.

    Raises:
        ProtocolError: Empty or malformed document, or missing elements.
    """
    if xml is None or not xml.strip():
        raise ProtocolError("Empty SVS response")
    try:
        root = fromstring(xml)
    except (ParseError, DefusedXmlException) as exc:
        raise ProtocolError(f"Malformed SVS response: {exc}") from exc

    value_set = root if root.tag.rsplit("}", 1)[-1] == "ValueSet" else root.find("{*}ValueSet")
    if value_set is None:
        raise ProtocolError("SVS response has no ValueSet element")

    oid = value_set.get("ID")
    version = value_set.get("version")
    if not oid or version is None:
        raise ProtocolError("SVS ValueSet element lacks ID or version")

    concept_list = value_set.find("{*}ConceptList")
    if concept_list is None:
        raise ProtocolError(f"SVS ValueSet {oid} has no ConceptList")

    codes: list[Code] = []
    for concept in concept_list.iterfind("{*}Concept"):
        code = concept.get("code")
        system = concept.get("codeSystem")
        if not code or not system:
            raise ProtocolError(f"SVS ValueSet {oid} has a Concept without code/codeSystem")
        codes.extend(resolver.codes_for(code, system, concept.get("codeSystemVersion")))

    return FetchResult(oid=oid, version=version, codes=codes)


class SvsAdapter(BaseValueSetAdapter):
    """Ticket-based SVS adapter.

    Args:
        config: Endpoints and transport settings.
        client: Optional pre-built HTTP client.
        policy: Code system policy; defaults to ``config.code_system_policy``.
        ticket_auth: Use the TGT/service-ticket exchange (default) or Basic auth.
    """

    name = "SVS"

    def __init__(
        self,
        config: VsacConfig | None = None,
        client: httpx.AsyncClient | None = None,
        policy: CodeSystemPolicy | str | None = None,
        ticket_auth: bool = True,
    ) -> None:
        super().__init__(config, client)
        self.resolver = CodeSystemResolver(policy or self.config.code_system_policy)
        self.ticket_auth = ticket_auth
        self._tgts: dict[Credential, str] = {}
        self._tgt_lock = asyncio.Lock()

    async def fetch(
        self,
        credential: Credential,
        oid: str,
        version: str | None = None,
        cache: ResponseCache | None = None,
    ) -> FetchResult:
        params = {"id": oid}
        if version is not None:
            params["version"] = version

        if self.ticket_auth:
            tgt = await self._ticket_granting_ticket(credential)
            params["ticket"] = await self._service_ticket(credential, tgt)
            auth = None
        else:
            auth = credential.basic_auth()

        logger.debug("Getting ValueSet: %s%s", oid, version_label(version))
        response = await self._request("GET", self.config.svs_url, params=params, auth=auth)
        data = response.text
        result = parse_svs_xml(data, self.resolver)
        if cache is not None:
            cache.write_raw_text(oid, "xml", data)
        return result

    async def end_batch(self) -> None:
        self._tgts.clear()

    async def _ticket_granting_ticket(self, credential: Credential) -> str:
        async with self._tgt_lock:
            tgt = self._tgts.get(credential)
            if tgt is None:
                logger.debug("Getting TGT")
                response = await self._request(
                    "POST", self.config.ticket_url, data=credential.ticket_form()
                )
                tgt = response.text.strip()
                if not tgt:
                    raise ProtocolError("Empty ticket-granting ticket")
                self._tgts[credential] = tgt
            return tgt

    async def _service_ticket(self, credential: Credential, tgt: str) -> str:
        logger.debug("Getting ST")
        try:
            response = await self._request(
                "POST",
                f"{self.config.ticket_url.rstrip('/')}/{tgt}",
                data={"service": self.config.service_name},
            )
        except AuthenticationError:
            # Expired or revoked TGT: later items fetch a new one.
            self._tgts.pop(credential, None)
            raise
        ticket = response.text.strip()
        if not ticket:
            raise ProtocolError("Empty service ticket")
        return ticket
