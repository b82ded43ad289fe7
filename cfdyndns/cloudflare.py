"""A small client for the Cloudflare DNS API and public IP lookup."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any

import requests

from cfdyndns.common import parse_int
from cfdyndns.config import Environment

API_BASE = "https://api.cloudflare.com/client/v4"
LIST_ZONES = f"{API_BASE}/zones"
DNS_RECORDS = API_BASE + "/zones/{zone_id}/dns_records"
UPDATE_RECORD = API_BASE + "/zones/{zone_id}/dns_records/{record_id}"
IPIFY_URL = "https://api.ipify.org"


class CloudflareError(Exception):
    """Raised when a request to the API fails or is rejected."""


@dataclass
class Record:
    """A DNS record."""

    id: str = ""
    name: str = ""
    type: str = ""
    content: str = ""
    comment: str = ""
    ttl: int = 0
    proxied: bool = False

    def to_json(self) -> dict[str, Any]:
        """Return the record as an API JSON object."""
        return asdict(self)

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> Record:
        """Build a record from an API JSON object, tolerating missing keys."""
        data = data or {}
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            type=data.get("type") or "",
            content=data.get("content") or "",
            comment=data.get("comment") or "",
            ttl=data.get("ttl") or 0,
            proxied=bool(data.get("proxied", False)),
        )


@dataclass
class Zone:
    """A DNS zone."""

    id: str = ""
    development_mode: int = 0
    name: str = ""
    original_dnshost: str = ""
    original_registrar: str = ""
    cname_suffix: str = ""
    status: str = ""
    type: str = ""
    paused: bool = False
    name_servers: list[str] = field(default_factory=list)
    original_name_servers: list[str] = field(default_factory=list)
    permissions: list[str] = field(default_factory=list)
    vanity_name_servers: list[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> Zone:
        """Build a zone from an API JSON object, tolerating missing keys."""
        data = data or {}
        return cls(
            id=data.get("id") or "",
            development_mode=data.get("development_mode") or 0,
            name=data.get("name") or "",
            original_dnshost=data.get("original_dnshost") or "",
            original_registrar=data.get("original_registrar") or "",
            cname_suffix=data.get("cname_suffix") or "",
            status=data.get("status") or "",
            type=data.get("type") or "",
            paused=bool(data.get("paused", False)),
            name_servers=list(data.get("name_servers") or []),
            original_name_servers=list(data.get("original_name_servers") or []),
            permissions=list(data.get("permissions") or []),
            vanity_name_servers=list(data.get("vanity_name_servers") or []),
        )


@dataclass
class Message:
    """An error or informational message returned by the API."""

    code: int = 0
    message: str = ""

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> Message:
        data = data or {}
        return cls(code=data.get("code") or 0, message=data.get("message") or "")


def _describe_errors(body: dict[str, Any]) -> str:
    errors = [Message.from_json(item) for item in body.get("errors") or []]
    if not errors:
        return ""
    return " (" + "; ".join(f"{e.code}: {e.message}" for e in errors) + ")"


class CloudflareClient:
    """Client for zone lookup and A record management."""

    def __init__(
        self,
        api_token: str,
        timeout: float = 5,
        session: requests.Session | None = None,
    ) -> None:
        self.api_token = api_token
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.zones: dict[str, Zone] = {}

    @classmethod
    def from_env(cls, env: Environment) -> CloudflareClient:
        """Create a client from configuration; raises ValueError on a bad timeout."""
        return cls(env.api_token, timeout=parse_int(env.timeout, "timeout"))

    def get_first_record(self, name: str, record_type: str) -> Record | None:
        """Return the first record with this name and type, or None if there is none."""
        zone = self.find_matching_zone(name)
        url = DNS_RECORDS.format(zone_id=zone.id)
        try:
            body = self._request(
                "GET", url, params={"name": name, "type": record_type}
            )
        except CloudflareError as exc:
            raise CloudflareError(f"get_first_record: {exc}") from exc
        if body.get("success") is not True:
            raise CloudflareError(
                f"get_first_record: Couldn't search record '{name}' "
                f"of type '{record_type}'{_describe_errors(body)}"
            )
        results = body.get("result") or []
        return Record.from_json(results[0]) if results else None

    def create_record(self, record: Record) -> Record:
        """Create a record and return it as stored by the API."""
        zone = self.find_matching_zone(record.name)
        url = DNS_RECORDS.format(zone_id=zone.id)
        try:
            body = self._request("POST", url, payload=record.to_json())
        except CloudflareError as exc:
            raise CloudflareError(f"create_record: {exc}") from exc
        if body.get("success") is not True:
            raise CloudflareError(
                f"create_record: couldn't create new record{_describe_errors(body)}"
            )
        return Record.from_json(body.get("result"))

    def update_record(self, domain: str, record_id: str, content: str) -> Record:
        """Set the content of an existing record and return the updated record."""
        zone = self.find_matching_zone(domain)
        url = UPDATE_RECORD.format(zone_id=zone.id, record_id=record_id)
        try:
            body = self._request("PATCH", url, payload={"content": content})
        except CloudflareError as exc:
            raise CloudflareError(f"update_record: {exc}") from exc
        if body.get("success") is not True:
            raise CloudflareError(
                f"update_record: Couldn't update record{_describe_errors(body)}"
            )
        return Record.from_json(body.get("result"))

    def find_matching_zone(self, domain: str) -> Zone:
        """Return the zone whose name is a suffix of ``domain``."""
        if not self.zones:
            try:
                self.setup_zones()
            except CloudflareError as exc:
                raise CloudflareError(f"find_matching_zone: {exc}") from exc
        for name, zone in self.zones.items():
            if domain.endswith(name):
                return zone
        raise CloudflareError(
            f"find_matching_zone: didn't find any zone matching {domain}"
        )

    def setup_zones(self) -> None:
        """Load all available zones once; later calls do nothing."""
        if self.zones:
            return
        try:
            body = self._request("GET", LIST_ZONES)
        except CloudflareError as exc:
            raise CloudflareError(f"setup_zones: {exc}") from exc
        if body.get("success") is not True:
            raise CloudflareError(f"setup_zones: failed{_describe_errors(body)}")
        results = body.get("result") or []
        if not results:
            raise CloudflareError("setup_zones: no zone found")
        for item in results:
            zone = Zone.from_json(item)
            self.zones[zone.name] = zone

    def get_current_ip(self) -> str:
        """Return this host's public IP address as reported by ipify."""
        try:
            res = self.session.get(IPIFY_URL, timeout=self.timeout)
        except requests.RequestException as exc:
            raise CloudflareError(f"Couldn't make request: {exc}") from exc
        if res.status_code == 200:
            return res.text
        raise CloudflareError(f"Received status code {res.status_code}: {res.text}")

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_token}",
        }
        data = (
            json.dumps(payload, separators=(",", ":")) if payload is not None else None
        )
        try:
            res = self.session.request(
                method,
                url,
                params=params,
                data=data,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise CloudflareError(f"Failed to send request: {exc}") from exc
        try:
            body = res.json()
        except ValueError as exc:
            raise CloudflareError(
                f"Failed to decode response: {exc}: {res.text}"
            ) from exc
        if res.status_code >= 300:
            raise CloudflareError(
                f"Received status code {res.status_code}: {res.text}"
            )
        if not isinstance(body, dict):
            raise CloudflareError(f"Unexpected response: {res.text}")
        return body