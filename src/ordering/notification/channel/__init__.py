"""Email channel registry.

``get_email_channel`` returns the configured provider adapter, or None
when no provider is configured, in which case every email goes straight
to the outbox as pending. The adapter is chosen by ``EMAIL_ADAPTER``:
``resend`` (needs ``RESEND_API_KEY``), ``fake`` or ``outbox``.
"""

from ordering.notification.channel.email_port import EmailPort
from ordering.settings import get_settings

_email_channel: EmailPort | None = None
_resolved = False


def get_email_channel() -> EmailPort | None:
    """Return the configured email adapter (singleton), or None for outbox-only."""
    global _email_channel, _resolved
    if not _resolved:
        settings = get_settings()
        adapter = settings.email_adapter
        if adapter == "resend":
            if settings.resend_api_key:
                from ordering.notification.channel.resend_email import ResendEmailAdapter

                _email_channel = ResendEmailAdapter(api_key=settings.resend_api_key, default_from=settings.email_from)
            else:
                _email_channel = None
        elif adapter == "fake":
            from ordering.notification.channel.fake_email import FakeEmailAdapter

            _email_channel = FakeEmailAdapter()
        elif adapter == "outbox":
            _email_channel = None
        else:
            raise ValueError(f"Unknown email adapter: {adapter}")
        _resolved = True
    return _email_channel


def set_email_channel(channel: EmailPort | None) -> None:
    """Override the active email adapter; None means outbox-only (useful for tests)."""
    global _email_channel, _resolved
    _email_channel = channel
    _resolved = True


def reset_email_channel() -> None:
    """Reset the channel singleton so the next access re-reads settings."""
    global _email_channel, _resolved
    _email_channel = None
    _resolved = False
