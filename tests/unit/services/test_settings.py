from datetime import timedelta

import pytest
from pydantic import ValidationError

from config import ApplicationConfig
from sessionguard.app.services.settings import RiskThresholds, SecuritySettings
from sessionguard.domain.entities import SecurityLevel


def test_defaults_shrink_ttl_as_risk_rises():
    settings = SecuritySettings()

    assert settings.ttl_for(SecurityLevel.normal) == timedelta(days=30)
    assert settings.ttl_for(SecurityLevel.elevated) == timedelta(days=7)
    assert settings.ttl_for(SecurityLevel.high_risk) == timedelta(days=1)
    assert settings.ttl_for(SecurityLevel.critical) == timedelta(hours=4)
    assert settings.password_reset_ttl == timedelta(hours=1)


def test_from_config_reads_application_config():
    settings = SecuritySettings.from_config(ApplicationConfig)

    assert settings.max_login_attempts == ApplicationConfig.MAX_LOGIN_ATTEMPTS
    assert settings.risk_thresholds.critical == ApplicationConfig.RISK_THRESHOLDS["critical"]


def test_ttl_table_must_strictly_shrink():
    with pytest.raises(ValidationError):
        SecuritySettings(
            session_ttl_seconds={
                "normal": 3600,
                "elevated": 7200,
                "high_risk": 1800,
                "critical": 600,
            }
        )


def test_ttl_table_must_cover_every_level():
    with pytest.raises(ValidationError):
        SecuritySettings(session_ttl_seconds={"normal": 3600})


def test_thresholds_must_be_ordered():
    with pytest.raises(ValidationError):
        RiskThresholds(critical=50, high_risk=60, elevated=30)


def test_unknown_fingerprint_rotation_rejected():
    with pytest.raises(ValidationError):
        SecuritySettings(fingerprint_rotation="hourly")
