"""
Risk Assessment Engine

Combines device, location, time-of-day and failure signals into a 0-100
score and a security level. Pure CPU work; never touches storage.
"""

import logging
from datetime import UTC, datetime
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sessionguard.domain.context import RiskAssessment, RiskContext
from sessionguard.domain.entities import SecurityLevel

from .settings import RiskThresholds, SecuritySettings

logger = logging.getLogger(__name__)

FACTOR_RECOMMENDATIONS = {
    "new_device": "Verify the device through a secondary channel",
    "no_device_fingerprint": "Require a recognizable client before trusting the session",
    "high_risk_country": "Require additional verification for this location",
    "untrusted_country": "Confirm the sign-in location with the user",
    "new_location": "Notify the user about the location change",
    "suspicious_time": "Review activity outside usual hours",
    "no_ip_address": "Investigate requests without a resolvable source address",
    "authentication_failures": "Monitor for brute force attempts",
    "excessive_sessions": "Review concurrent sessions for this account",
    "calculation_error": "Security assessment temporarily unavailable",
}

LEVEL_RECOMMENDATIONS = {
    SecurityLevel.critical: "Immediate security review required",
    SecurityLevel.high_risk: "Enhanced security measures recommended",
    SecurityLevel.elevated: "Additional verification may be required",
}


def security_level_for(score: int, thresholds: Optional[RiskThresholds] = None) -> SecurityLevel:
    thresholds = thresholds or RiskThresholds()
    if score >= thresholds.critical:
        return SecurityLevel.critical
    if score >= thresholds.high_risk:
        return SecurityLevel.high_risk
    if score >= thresholds.elevated:
        return SecurityLevel.elevated
    return SecurityLevel.normal


def _local_hour(occurred_at: datetime, timezone: Optional[str]) -> int:
    if not timezone:
        return occurred_at.hour
    try:
        zone = ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        return occurred_at.hour
    return occurred_at.replace(tzinfo=UTC).astimezone(zone).hour


class RiskAssessmentEngine:
    def __init__(self, settings: Optional[SecuritySettings] = None):
        self.settings = settings or SecuritySettings()

    def level_for(self, score: int) -> SecurityLevel:
        return security_level_for(score, self.settings.risk_thresholds)

    def score(self, context: RiskContext, now: datetime) -> RiskAssessment:
        weights = self.settings.risk_weights
        score = 0
        factors: List[str] = []

        if context.is_new_device:
            score += weights.new_device
            factors.append("new_device")

        if context.device is None or not context.device.fingerprint:
            score += weights.no_fingerprint
            factors.append("no_device_fingerprint")

        country = context.geolocation.country if context.geolocation else None
        if country:
            country = country.upper()
            if country in self.settings.high_risk_countries:
                score += weights.high_risk_country
                factors.append("high_risk_country")
            elif country not in self.settings.trusted_countries:
                score += weights.untrusted_country
                factors.append("untrusted_country")

        if context.is_new_location:
            score += weights.new_location
            factors.append("new_location")

        occurred_at = context.occurred_at or now
        timezone = context.geolocation.timezone if context.geolocation else None
        if self.settings.suspicious_hours.contains(_local_hour(occurred_at, timezone)):
            score += weights.suspicious_time
            factors.append("suspicious_time")

        if not context.ip_address or context.ip_address == "unknown":
            score += weights.no_ip_address
            factors.append("no_ip_address")

        if context.consecutive_failures > 0:
            score += min(context.consecutive_failures * weights.per_failure, weights.failure_cap)
            factors.append("authentication_failures")

        if context.active_session_count > self.settings.max_concurrent_sessions:
            score += weights.excessive_sessions
            factors.append("excessive_sessions")

        return self._build(score, factors, now)

    def score_or_default(self, context: RiskContext, now: datetime) -> RiskAssessment:
        """Scoring is advisory: any failure yields the conservative fallback."""
        try:
            return self.score(context, now)
        except Exception:
            logger.exception("Risk scoring failed for user %s", context.user_id)
            # lowest score of the elevated band
            return self._build(
                self.settings.risk_thresholds.elevated, ["calculation_error"], now
            )

    def _build(self, score: int, factors: List[str], now: datetime) -> RiskAssessment:
        score = max(0, min(100, score))
        level = self.level_for(score)
        recommendations = [
            FACTOR_RECOMMENDATIONS[factor] for factor in factors if factor in FACTOR_RECOMMENDATIONS
        ]
        if level in LEVEL_RECOMMENDATIONS:
            recommendations.append(LEVEL_RECOMMENDATIONS[level])
        return RiskAssessment(
            score=score,
            level=level,
            factors=factors,
            recommendations=recommendations,
            computed_at=now,
        )
