"""
Request and Risk Context Value Objects

Pure values passed between the context resolver, the risk engine and the
session manager. None of them are persisted directly.
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .entities.enums import DeviceType, SecurityLevel


class DeviceInfo(BaseModel):
    """Device derived from a user-agent string"""

    name: str = "Unknown Device"
    type: DeviceType = DeviceType.unknown
    fingerprint: Optional[str] = None
    platform: Optional[str] = None
    browser: Optional[str] = None
    os: Optional[str] = None


class GeolocationContext(BaseModel):
    """Coarse location; every field optional"""

    country: Optional[str] = None
    city: Optional[str] = None
    timezone: Optional[str] = None

    def display(self) -> str:
        if self.country and self.city:
            return f"{self.city}, {self.country}"
        return self.country or self.city or "Unknown Location"


class RequestContext(BaseModel):
    """What the HTTP layer knows about the caller"""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device: DeviceInfo = Field(default_factory=DeviceInfo)
    geolocation: Optional[GeolocationContext] = None
    source: str = "web"


class RiskContext(BaseModel):
    """Every signal the risk engine scores; assembled by the session manager"""

    user_id: UUID
    ip_address: Optional[str] = None
    device: Optional[DeviceInfo] = None
    geolocation: Optional[GeolocationContext] = None
    is_new_device: bool = False
    is_new_location: bool = False
    occurred_at: Optional[datetime] = None  # naive UTC
    consecutive_failures: int = 0
    active_session_count: int = 0


class RiskAssessment(BaseModel):
    score: int = Field(ge=0, le=100)
    level: SecurityLevel
    factors: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    computed_at: datetime


class SessionView(BaseModel):
    """Public projection of a Session (never includes the token digest)"""

    id: str
    user_id: str
    organization_id: Optional[str]
    purpose: str
    issued_at: datetime
    expires_at: datetime
    last_accessed_at: datetime
    device_type: str
    device_name: Optional[str]
    ip_address: Optional[str]
    location: Optional[str]
    risk_score: int
    security_level: str
    risk_factors: List[str]
    metadata: Dict[str, object] = Field(default_factory=dict)
