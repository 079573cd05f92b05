"""Environment-driven settings for the ordering service.

Settings are read once per process into an immutable object and handed
to the components that need them. Tests swap them with ``set_settings``
or drop the cached copy with ``reset_settings``.
"""

import os
from dataclasses import dataclass, field

DEFAULT_EMAIL_FROM = "Farmlink <noreply@farmlink.uk>"
DEFAULT_APP_URL = "http://localhost:3000"


def normalize_email(email: str | None) -> str:
    """Trim and lower-case an email address; ``None`` becomes an empty string."""
    return (email or "").strip().lower()


def parse_admin_emails(raw: str | None) -> frozenset[str]:
    """Parse a comma-separated allowlist, dropping blanks and entries without ``@``."""
    entries = (normalize_email(part) for part in (raw or "").split(","))
    return frozenset(entry for entry in entries if entry and "@" in entry)


@dataclass(frozen=True)
class Settings:
    admin_emails: frozenset[str] = field(default_factory=frozenset)
    admin_notification_email: str | None = None
    email_from: str = DEFAULT_EMAIL_FROM
    resend_api_key: str | None = None
    email_adapter: str = "outbox"
    app_url: str = DEFAULT_APP_URL

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ

        resend_api_key = env.get("RESEND_API_KEY") or None
        email_adapter = env.get("EMAIL_ADAPTER") or ("resend" if resend_api_key else "outbox")

        return cls(
            admin_emails=parse_admin_emails(env.get("ADMIN_EMAILS")),
            admin_notification_email=normalize_email(env.get("ADMIN_EMAIL")) or None,
            email_from=env.get("EMAIL_FROM") or DEFAULT_EMAIL_FROM,
            resend_api_key=resend_api_key,
            email_adapter=email_adapter.strip().lower(),
            app_url=(env.get("APP_URL") or DEFAULT_APP_URL).rstrip("/"),
        )


_current_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the process settings, reading the environment on first use."""
    global _current_settings
    if _current_settings is None:
        _current_settings = Settings.from_env()
    return _current_settings


def set_settings(settings: Settings) -> None:
    """Override the active settings (useful for tests)."""
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    """Forget cached settings so the next access re-reads the environment."""
    global _current_settings
    _current_settings = None
