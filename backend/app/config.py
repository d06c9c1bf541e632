"""
Runtime configuration.

Every setting comes from the environment (optionally a .env file loaded with
python-dotenv). Size limits default to the 4.5 MiB budget of the hosted
deployment; transports are configured with provider credentials.

Environment variables
---------------------
PRODUCT_NAME               Branding used in the archive name and email body.
PER_FILE_LIMIT_BYTES       Largest single file accepted (default 4.5 MiB).
TOTAL_BUDGET_BYTES         Largest total upload accepted (default 4.5 MiB).
MAX_RECIPIENTS             Recipient cap per send (default 5).
DELIVERY_TIMEOUT_SECONDS   Per-transport attempt timeout; 0 disables.
BREVO_*                    Primary transport (transactional API).
SMTP_*                     Fallback transport (direct SMTP submission).
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_SIZE_LIMIT_BYTES = int(4.5 * 1024 * 1024)
DEFAULT_MAX_RECIPIENTS = 5
DEFAULT_BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"

REQUIRED_ENV_VARS = [
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USER",
    "SMTP_PASS",
    "SMTP_FROM_EMAIL",
    "SMTP_FROM_NAME",
    "BREVO_API_KEY",
    "BREVO_SENDER_EMAIL",
    "BREVO_SENDER_NAME",
]

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class SizeLimits:
    """Per-file and aggregate byte limits plus the recipient cap."""

    per_file_limit_bytes: int = DEFAULT_SIZE_LIMIT_BYTES
    total_budget_bytes: int = DEFAULT_SIZE_LIMIT_BYTES
    max_recipients: int = DEFAULT_MAX_RECIPIENTS


@dataclass(frozen=True)
class BrevoSettings:
    api_key: str = ""
    sender_email: str = ""
    sender_name: str = "XyloMail"
    api_url: str = DEFAULT_BREVO_API_URL

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.sender_email)


@dataclass(frozen=True)
class SmtpSettings:
    host: str = ""
    port: int = 587
    user: str = ""
    password: str = ""
    from_email: str = ""
    from_name: str = "XyloMail"
    use_tls: bool = True

    @property
    def configured(self) -> bool:
        return bool(self.host and self.from_email)


@dataclass(frozen=True)
class Settings:
    product_name: str = "XyloMail"
    limits: SizeLimits = field(default_factory=SizeLimits)
    delivery_timeout_seconds: Optional[float] = 30.0
    brevo: BrevoSettings = field(default_factory=BrevoSettings)
    smtp: SmtpSettings = field(default_factory=SmtpSettings)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _timeout_env(name: str, default: float) -> Optional[float]:
    """Read a timeout in seconds; 0 or a negative value means no timeout."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}")
    return value if value > 0 else None


def load_settings() -> Settings:
    """
    Build a Settings snapshot from the current environment.

    Called per request by the send-email router so that tests and operators
    can change the environment without restarting the process.

    Raises:
        ValueError: if a numeric variable cannot be parsed.
    """
    product_name = os.getenv("PRODUCT_NAME", "").strip() or "XyloMail"

    limits = SizeLimits(
        per_file_limit_bytes=_int_env("PER_FILE_LIMIT_BYTES", DEFAULT_SIZE_LIMIT_BYTES),
        total_budget_bytes=_int_env("TOTAL_BUDGET_BYTES", DEFAULT_SIZE_LIMIT_BYTES),
        max_recipients=_int_env("MAX_RECIPIENTS", DEFAULT_MAX_RECIPIENTS),
    )

    brevo = BrevoSettings(
        api_key=os.getenv("BREVO_API_KEY", ""),
        sender_email=os.getenv("BREVO_SENDER_EMAIL", ""),
        sender_name=os.getenv("BREVO_SENDER_NAME") or product_name,
        api_url=os.getenv("BREVO_API_URL") or DEFAULT_BREVO_API_URL,
    )

    smtp = SmtpSettings(
        host=os.getenv("SMTP_HOST", ""),
        port=_int_env("SMTP_PORT", 587),
        user=os.getenv("SMTP_USER", ""),
        password=os.getenv("SMTP_PASS", ""),
        from_email=os.getenv("SMTP_FROM_EMAIL", ""),
        from_name=os.getenv("SMTP_FROM_NAME") or product_name,
        use_tls=os.getenv("SMTP_USE_TLS", "true").strip().lower() in _TRUTHY,
    )

    return Settings(
        product_name=product_name,
        limits=limits,
        delivery_timeout_seconds=_timeout_env("DELIVERY_TIMEOUT_SECONDS", 30.0),
        brevo=brevo,
        smtp=smtp,
    )


def missing_required_env() -> list[str]:
    """Return the names of required transport variables that are unset."""
    return [name for name in REQUIRED_ENV_VARS if not os.getenv(name)]
