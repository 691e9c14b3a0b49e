"""
NamecheapConnector — domains, DNS host records and nameservers.

Token: composite ``apiUser|apiKey|clientIP``.  The client IP must be
whitelisted in the Namecheap dashboard.  The API is XML over GET with the
credential in the query string; failures come back as HTTP 200 with
``Status="ERROR"`` on the root element.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator

from connectors.base import ActionParams, BaseConnector, NoParams, action
from connectors.errors import AuthError, InvalidActionParams, ProviderError
from connectors.models import AccountInfo

logger = logging.getLogger(__name__)

_NC_API = "https://api.namecheap.com/xml.response"

# Error numbers Namecheap uses for bad key / user / non-whitelisted IP
_AUTH_ERROR_NUMBERS = frozenset({"1010101", "1011102", "1011150"})


class NamecheapCredential(NamedTuple):
    api_user: str
    api_key: str
    client_ip: str


def parse_credential(token: str) -> NamecheapCredential:
    parts = [p.strip() for p in (token or "").split("|")]
    if len(parts) != 3 or not all(parts):
        raise AuthError("Namecheap credential must be formatted as apiUser|apiKey|clientIP")
    return NamecheapCredential(*parts)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1].lower()


def _find_all(root: ET.Element, name: str) -> List[ET.Element]:
    """Find descendants by local tag name, ignoring the response namespace."""
    name = name.lower()
    return [el for el in root.iter() if _local(el.tag) == name]


def _split_domain(domain: str) -> Tuple[str, str]:
    sld, _, tld = domain.strip().partition(".")
    if not sld or not tld:
        raise InvalidActionParams(f"Invalid domain name: {domain!r}")
    return sld, tld


class HostRecord(BaseModel):
    model_config = {"populate_by_name": True}

    name: str
    type: str
    address: str
    ttl: int = 1800
    mx_pref: Optional[int] = Field(default=None, alias="mxPref")


class DomainRef(ActionParams):
    domain: str


class SetDns(DomainRef):
    records: List[HostRecord]


class CheckAvailability(ActionParams):
    domains: List[str]

    @field_validator("domains", mode="before")
    @classmethod
    def _split_domain_list(cls, value: Union[str, List[str]]) -> List[str]:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


class SetNameservers(DomainRef):
    nameservers: List[str]


class NamecheapConnector(BaseConnector):
    base_url = ""

    @property
    def provider_name(self) -> str:
        return "namecheap"

    @property
    def display_name(self) -> str:
        return "Namecheap"

    def _headers(self, token: str) -> Dict[str, str]:
        return {"User-Agent": self.settings.user_agent}

    async def _call(self, command: str, token: str, extra: Optional[Dict[str, Any]] = None) -> ET.Element:
        cred = parse_credential(token)
        query: Dict[str, Any] = {
            "ApiUser": cred.api_user,
            "ApiKey": cred.api_key,
            "UserName": cred.api_user,
            "ClientIp": cred.client_ip,
            "Command": command,
        }
        if extra:
            query.update(extra)
        logger.debug("Namecheap command %s", command)
        resp = await self._send("GET", _NC_API, params=query, headers=self._headers(token))
        if not resp.is_success:
            raise self._error_for(resp)
        try:
            root = ET.fromstring(resp.text)
        except ET.ParseError as exc:
            raise ProviderError("Namecheap returned malformed XML", status=resp.status_code) from exc

        if (root.get("Status") or "").upper() == "ERROR":
            errors = _find_all(root, "Error")
            first = errors[0] if errors else None
            message = (first.text or "").strip() if first is not None else ""
            number = first.get("Number") if first is not None else None
            error_cls = AuthError if number in _AUTH_ERROR_NUMBERS else ProviderError
            raise error_cls(message or "Namecheap API error", provider_code=number)
        return root

    async def test_connection(self, token: str) -> AccountInfo:
        cred = parse_credential(token)
        try:
            root = await self._call("namecheap.domains.getList", token)
        except AuthError:
            raise
        except ProviderError as exc:
            if exc.status is not None:
                raise
            # Status="ERROR" on the first call means the credential is unusable
            raise AuthError(exc.message, provider_code=exc.provider_code) from exc
        domains = [el.get("Name") for el in _find_all(root, "Domain") if el.get("Name")]
        return AccountInfo(
            id=cred.api_user,
            name=cred.api_user,
            extra={"domainCount": len(domains), "domains": domains[:20], "clientIp": cred.client_ip},
        )

    # ── Actions ────────────────────────────────────────────────────────

    @action(NoParams)
    async def list_domains(self, params: NoParams, token: str) -> Any:
        """List domains in the account."""
        root = await self._call("namecheap.domains.getList", token, {"PageSize": 100})
        return [
            {
                "name": el.get("Name"),
                "expires": el.get("Expires"),
                "isExpired": el.get("IsExpired") == "true",
                "autoRenew": el.get("AutoRenew") == "true",
                "isOurDNS": el.get("IsOurDNS") == "true",
            }
            for el in _find_all(root, "Domain")
        ]

    @action(DomainRef)
    async def get_dns(self, params: DomainRef, token: str) -> Any:
        """Get a domain's DNS host records."""
        sld, tld = _split_domain(params.domain)
        root = await self._call("namecheap.domains.dns.getHosts", token, {"SLD": sld, "TLD": tld})
        return [
            {
                "hostId": el.get("HostId"),
                "name": el.get("Name"),
                "type": el.get("Type"),
                "address": el.get("Address"),
                "ttl": el.get("TTL"),
                "mxPref": el.get("MXPref"),
            }
            for el in _find_all(root, "host")
        ]

    @action(SetDns, summary="Replace all host records ({name, type, address, ttl?, mxPref?}).")
    async def set_dns(self, params: SetDns, token: str) -> Any:
        sld, tld = _split_domain(params.domain)
        query: Dict[str, Any] = {"SLD": sld, "TLD": tld}
        for i, record in enumerate(params.records, start=1):
            query[f"HostName{i}"] = record.name
            query[f"RecordType{i}"] = record.type
            query[f"Address{i}"] = record.address
            query[f"TTL{i}"] = record.ttl
            if record.mx_pref is not None:
                query[f"MXPref{i}"] = record.mx_pref
        root = await self._call("namecheap.domains.dns.setHosts", token, query)
        result = next(iter(_find_all(root, "DomainDNSSetHostsResult")), None)
        return {
            "domain": params.domain,
            "success": result is not None and result.get("IsSuccess") == "true",
            "records": len(params.records),
        }

    @action(CheckAvailability)
    async def check_availability(self, params: CheckAvailability, token: str) -> Any:
        """Check whether domains can be registered (list or comma-separated string)."""
        root = await self._call("namecheap.domains.check", token, {"DomainList": ",".join(params.domains)})
        return [
            {
                "domain": el.get("Domain"),
                "available": el.get("Available") == "true",
                "premium": el.get("IsPremiumName") == "true",
            }
            for el in _find_all(root, "DomainCheckResult")
        ]

    @action(SetNameservers)
    async def set_nameservers(self, params: SetNameservers, token: str) -> Any:
        """Point a domain at custom nameservers."""
        sld, tld = _split_domain(params.domain)
        root = await self._call(
            "namecheap.domains.dns.setCustom",
            token,
            {"SLD": sld, "TLD": tld, "Nameservers": ",".join(params.nameservers)},
        )
        result = next(iter(_find_all(root, "DomainDNSSetCustomResult")), None)
        return {
            "domain": params.domain,
            "nameservers": params.nameservers,
            "success": result is not None and result.get("Updated") == "true",
        }
