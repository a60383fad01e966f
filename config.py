import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.environ.get(
    "SESSIONGUARD_CONFIG", os.path.join(ROOT_PATH, "env.yaml")
)

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./sessionguard.db")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    AUTO_CREATE_TABLES = data.get("AUTO_CREATE_TABLES", True)
    ADMIN_API_KEY = data.get("ADMIN_API_KEY", "test-admin-key-12345")

    # Session lifetime per security level (seconds)
    SESSION_TTL_SECONDS = data.get(
        "SESSION_TTL_SECONDS",
        {
            "normal": 30 * 24 * 3600,
            "elevated": 7 * 24 * 3600,
            "high_risk": 24 * 3600,
            "critical": 4 * 3600,
        },
    )
    PASSWORD_RESET_TTL_SECONDS = data.get("PASSWORD_RESET_TTL_SECONDS", 3600)
    PASSWORD_RESET_HOURLY_LIMIT = data.get("PASSWORD_RESET_HOURLY_LIMIT", 3)

    # Risk engine
    SUSPICIOUS_HOURS = data.get("SUSPICIOUS_HOURS", {"start": 2, "end": 6})
    TRUSTED_COUNTRIES = data.get(
        "TRUSTED_COUNTRIES", ["BR", "US", "CA", "GB", "AU", "DE", "FR", "ES", "NL"]
    )
    HIGH_RISK_COUNTRIES = data.get("HIGH_RISK_COUNTRIES", ["CN", "RU", "KP", "IR"])
    RISK_WEIGHTS = data.get("RISK_WEIGHTS", {})
    RISK_THRESHOLDS = data.get(
        "RISK_THRESHOLDS", {"critical": 80, "high_risk": 60, "elevated": 30}
    )
    MAX_CONCURRENT_SESSIONS = data.get("MAX_CONCURRENT_SESSIONS", 10)
    FINGERPRINT_ROTATION = data.get("FINGERPRINT_ROTATION", "daily")
    GEOIP_STATIC_TABLE = data.get("GEOIP_STATIC_TABLE", {})

    # Sign-in protection
    MAX_LOGIN_ATTEMPTS = data.get("MAX_LOGIN_ATTEMPTS", 5)
    LOCKOUT_SECONDS = data.get("LOCKOUT_SECONDS", 15 * 60)
    SIGN_IN_RATE_LIMIT = data.get("SIGN_IN_RATE_LIMIT", 20)
    SIGN_IN_RATE_WINDOW_SECONDS = data.get("SIGN_IN_RATE_WINDOW_SECONDS", 15 * 60)

    # Hot-path timeouts
    VALIDATION_TIMEOUT_SECONDS = data.get("VALIDATION_TIMEOUT_SECONDS", 0.5)
    AUDIT_WRITE_TIMEOUT_SECONDS = data.get("AUDIT_WRITE_TIMEOUT_SECONDS", 5.0)
