"""
Device/Geo Context Resolver

Derives device information and a coarse geolocation from request data.
Pure functions apart from the injected geolocation lookup, which must not
perform network I/O.
"""

import hashlib
import ipaddress
import json
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Mapping, Optional

import user_agents
from user_agents.parsers import UserAgent

from sessionguard.domain.context import DeviceInfo, GeolocationContext, RequestContext
from sessionguard.domain.entities import DeviceType

# Checked in order; the first header holding a valid address wins
IP_HEADERS = (
    "x-forwarded-for",
    "x-real-ip",
    "x-client-ip",
    "cf-connecting-ip",
    "fastly-client-ip",
    "x-cluster-client-ip",
    "x-forwarded",
    "forwarded-for",
    "forwarded",
)

# ua-parser reports unrecognised families as "Other"
_UNKNOWN_FAMILY = "Other"


def _family(value: str) -> Optional[str]:
    if not value or value == _UNKNOWN_FAMILY:
        return None
    return value


def generate_fingerprint(
    user_agent: str,
    now: datetime,
    rotation: str = "daily",
    extra: Optional[Dict[str, str]] = None,
) -> str:
    """
    Stable hash of the user agent (plus optional extra data).

    With rotation="daily" the UTC day number is mixed in, so fingerprints
    agree within a calendar day and change at midnight UTC.
    """
    payload = {"user_agent": user_agent, **(extra or {})}
    if rotation == "daily":
        payload["day"] = now.toordinal()
    data = json.dumps(payload, sort_keys=True)
    return hashlib.sha256(data.encode()).hexdigest()[:16]


def _device_type(ua: UserAgent) -> DeviceType:
    # Android tablets also match the mobile rules
    if ua.is_tablet:
        return DeviceType.tablet
    if ua.is_mobile:
        return DeviceType.mobile
    if ua.is_pc:
        return DeviceType.desktop
    return DeviceType.unknown


def classify_device_type(user_agent: Optional[str]) -> DeviceType:
    if not user_agent:
        return DeviceType.unknown
    return _device_type(user_agents.parse(user_agent))


def parse_device(user_agent: Optional[str], now: datetime, rotation: str = "daily") -> DeviceInfo:
    if not user_agent:
        return DeviceInfo()

    ua = user_agents.parse(user_agent)
    browser = _family(ua.browser.family)
    os_name = _family(ua.os.family)

    return DeviceInfo(
        name=f"{browser} on {os_name}" if browser and os_name else "Unknown Device",
        type=_device_type(ua),
        fingerprint=generate_fingerprint(user_agent, now, rotation),
        platform=_family(ua.device.family) or os_name,
        browser=browser,
        os=os_name,
    )


def extract_from_headers(
    headers: Mapping[str, str], now: datetime, rotation: str = "daily"
) -> DeviceInfo:
    lowered = {key.lower(): value for key, value in headers.items()}
    return parse_device(lowered.get("user-agent"), now, rotation)


def is_valid_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def get_client_ip(
    headers: Mapping[str, str], fallback: Optional[str] = None
) -> Optional[str]:
    """First valid address from the proxy headers, else the validated fallback"""
    lowered = {key.lower(): value for key, value in headers.items()}
    for header in IP_HEADERS:
        value = lowered.get(header)
        if not value:
            continue
        candidate = value.split(",")[0].strip()
        if header == "forwarded" and candidate.lower().startswith("for="):
            candidate = candidate[4:].strip('"[]')
        if candidate and is_valid_ip(candidate):
            return candidate
    if fallback and is_valid_ip(fallback):
        return fallback
    return None


class IGeolocationLookup(ABC):
    """IP -> coarse location collaborator"""

    @abstractmethod
    def lookup(self, ip_address: Optional[str]) -> Optional[GeolocationContext]:
        pass


class StaticGeolocationLookup(IGeolocationLookup):
    """
    Table-driven lookup with no network access.

    Loopback, private and unknown addresses resolve to None.
    """

    def __init__(self, table: Optional[Dict[str, Dict[str, str]]] = None):
        self.table = table or {}

    def lookup(self, ip_address: Optional[str]) -> Optional[GeolocationContext]:
        if not ip_address or not is_valid_ip(ip_address):
            return None
        address = ipaddress.ip_address(ip_address)
        if address.is_loopback or address.is_private:
            return None
        entry = self.table.get(ip_address)
        if entry is None:
            return None
        return GeolocationContext(**entry)


class DeviceContextResolver:
    def __init__(
        self,
        geolocation: Optional[IGeolocationLookup] = None,
        fingerprint_rotation: str = "daily",
    ):
        self.geolocation = geolocation or StaticGeolocationLookup()
        self.fingerprint_rotation = fingerprint_rotation

    def resolve(
        self,
        headers: Mapping[str, str],
        now: datetime,
        peer_ip: Optional[str] = None,
        source: str = "web",
    ) -> RequestContext:
        lowered = {key.lower(): value for key, value in headers.items()}
        ip_address = get_client_ip(lowered, fallback=peer_ip)
        return RequestContext(
            ip_address=ip_address,
            user_agent=lowered.get("user-agent"),
            device=extract_from_headers(lowered, now, self.fingerprint_rotation),
            geolocation=self.geolocation.lookup(ip_address),
            source=source,
        )
