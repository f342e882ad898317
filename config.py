import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./invitations.db")
    AUTO_CREATE_TABLES = bool(data.get("AUTO_CREATE_TABLES", True))
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    JWT_SECRET = data.get("JWT_SECRET", "dev-secret-key-change-in-production")
    ADMIN_API_KEY = data.get("ADMIN_API_KEY", "test-admin-key-12345")

    # Invitation lifecycle
    INVITATION_EXPIRATION_ENABLED = bool(data.get("INVITATION_EXPIRATION_ENABLED", True))
    INVITATION_EXPIRATION_DAYS = data.get("INVITATION_EXPIRATION_DAYS", 7)
    INVITATION_REMINDERS_ENABLED = bool(data.get("INVITATION_REMINDERS_ENABLED", True))
    INVITATION_REMINDER_AFTER_DAYS = data.get("INVITATION_REMINDER_AFTER_DAYS", [3, 5])
    INVITATION_MAX_REMINDERS = data.get("INVITATION_MAX_REMINDERS", 2)
    # Kind -> template name; null disables the kind
    INVITATION_NOTIFICATIONS = data.get(
        "INVITATION_NOTIFICATIONS",
        {
            "invitation": "invitation_sent",
            "reminder": "invitation_reminder",
            "cancelled": "invitation_cancelled",
            "accepted": "invitation_accepted",
        },
    )
    INVITABLE_TYPES = data.get("INVITABLE_TYPES", ["team", "organization", "project"])
    INVITATION_REDIRECTS = data.get(
        "INVITATION_REDIRECTS",
        {"accepted": "/", "declined": "/", "expired": "/", "error": "/", "success": "/"},
    )

    # Outbound mail
    APP_BASE_URL = data.get("APP_BASE_URL", "http://localhost:8000")
    MAIL_API_URL = data.get("MAIL_API_URL", "")
    MAIL_API_KEY = data.get("MAIL_API_KEY", "")
    MAIL_FROM = data.get("MAIL_FROM", "no-reply@example.com")
