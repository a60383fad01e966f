"""
Security Settings

Typed view over ApplicationConfig consumed by the core services. Built once
by the wiring layer and passed into constructors.
"""

from datetime import timedelta
from typing import Dict, List

from pydantic import BaseModel, Field, field_validator, model_validator

from sessionguard.domain.entities import SecurityLevel


class RiskWeights(BaseModel):
    new_device: int = 25
    no_fingerprint: int = 10
    untrusted_country: int = 15
    high_risk_country: int = 40
    new_location: int = 20
    suspicious_time: int = 10
    no_ip_address: int = 15
    per_failure: int = 15
    failure_cap: int = 60
    excessive_sessions: int = 20


class RiskThresholds(BaseModel):
    critical: int = 80
    high_risk: int = 60
    elevated: int = 30

    @model_validator(mode="after")
    def _monotonic(self):
        if not (0 < self.elevated < self.high_risk < self.critical <= 100):
            raise ValueError(
                "risk thresholds must satisfy 0 < elevated < high_risk < critical <= 100"
            )
        return self


class SuspiciousHours(BaseModel):
    start: int = Field(default=2, ge=0, le=23)
    end: int = Field(default=6, ge=0, le=24)

    def contains(self, hour: int) -> bool:
        if self.start <= self.end:
            return self.start <= hour < self.end
        # window wraps midnight, e.g. 22 -> 4
        return hour >= self.start or hour < self.end


class SecuritySettings(BaseModel):
    session_ttl_seconds: Dict[SecurityLevel, int] = Field(
        default_factory=lambda: {
            SecurityLevel.normal: 30 * 24 * 3600,
            SecurityLevel.elevated: 7 * 24 * 3600,
            SecurityLevel.high_risk: 24 * 3600,
            SecurityLevel.critical: 4 * 3600,
        }
    )
    password_reset_ttl_seconds: int = 3600
    password_reset_hourly_limit: int = 3

    suspicious_hours: SuspiciousHours = Field(default_factory=SuspiciousHours)
    trusted_countries: List[str] = Field(
        default_factory=lambda: ["BR", "US", "CA", "GB", "AU", "DE", "FR", "ES", "NL"]
    )
    high_risk_countries: List[str] = Field(
        default_factory=lambda: ["CN", "RU", "KP", "IR"]
    )
    risk_weights: RiskWeights = Field(default_factory=RiskWeights)
    risk_thresholds: RiskThresholds = Field(default_factory=RiskThresholds)
    max_concurrent_sessions: int = 10
    fingerprint_rotation: str = "daily"
    geoip_static_table: Dict[str, Dict[str, str]] = Field(default_factory=dict)

    max_login_attempts: int = 5
    lockout_seconds: int = 15 * 60
    sign_in_rate_limit: int = 20
    sign_in_rate_window_seconds: int = 15 * 60

    validation_timeout_seconds: float = 0.5
    audit_write_timeout_seconds: float = 5.0

    @field_validator("session_ttl_seconds")
    @classmethod
    def _ttl_shrinks_with_risk(cls, value: Dict[SecurityLevel, int]):
        missing = [level.value for level in SecurityLevel if level not in value]
        if missing:
            raise ValueError(f"session TTL missing for levels: {missing}")
        ordered = [value[level] for level in SecurityLevel]
        if any(ttl <= 0 for ttl in ordered):
            raise ValueError("session TTLs must be positive")
        if ordered != sorted(ordered, reverse=True) or len(set(ordered)) != len(ordered):
            raise ValueError("session TTL must strictly shrink as security level rises")
        return value

    @field_validator("fingerprint_rotation")
    @classmethod
    def _rotation_policy(cls, value: str):
        if value not in ("daily", "none"):
            raise ValueError("fingerprint_rotation must be 'daily' or 'none'")
        return value

    def ttl_for(self, level: SecurityLevel) -> timedelta:
        return timedelta(seconds=self.session_ttl_seconds[level])

    @property
    def password_reset_ttl(self) -> timedelta:
        return timedelta(seconds=self.password_reset_ttl_seconds)

    @classmethod
    def from_config(cls, config) -> "SecuritySettings":
        return cls(
            session_ttl_seconds=config.SESSION_TTL_SECONDS,
            password_reset_ttl_seconds=config.PASSWORD_RESET_TTL_SECONDS,
            password_reset_hourly_limit=config.PASSWORD_RESET_HOURLY_LIMIT,
            suspicious_hours=config.SUSPICIOUS_HOURS,
            trusted_countries=config.TRUSTED_COUNTRIES,
            high_risk_countries=config.HIGH_RISK_COUNTRIES,
            risk_weights=config.RISK_WEIGHTS,
            risk_thresholds=config.RISK_THRESHOLDS,
            max_concurrent_sessions=config.MAX_CONCURRENT_SESSIONS,
            fingerprint_rotation=config.FINGERPRINT_ROTATION,
            geoip_static_table=config.GEOIP_STATIC_TABLE,
            max_login_attempts=config.MAX_LOGIN_ATTEMPTS,
            lockout_seconds=config.LOCKOUT_SECONDS,
            sign_in_rate_limit=config.SIGN_IN_RATE_LIMIT,
            sign_in_rate_window_seconds=config.SIGN_IN_RATE_WINDOW_SECONDS,
            validation_timeout_seconds=config.VALIDATION_TIMEOUT_SECONDS,
            audit_write_timeout_seconds=config.AUDIT_WRITE_TIMEOUT_SECONDS,
        )
