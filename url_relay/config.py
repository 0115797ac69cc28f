import os
from dataclasses import dataclass, field

from .init_data import InitDataVerifier


TOKEN_ENV_VAR = "URL_RELAY_BOT_TOKEN"
DEFAULT_MAX_AGE_SECONDS = 86400
DEFAULT_SEND_TIMEOUT = 10.0


class ConfigError(Exception):
    """Raised when the configuration cannot be used to start the service."""


@dataclass(frozen=True)
class Config:
    telegram_token: str = field(repr=False)
    notify_chat_id: int | None = None
    webapp_url: str = ""
    api_port: int = 0
    cors_origin: str = "*"
    max_age_seconds: int | None = DEFAULT_MAX_AGE_SECONDS
    send_timeout: float = DEFAULT_SEND_TIMEOUT

    def verifier(self) -> InitDataVerifier:
        """Return an InitDataVerifier bound to this bot token and freshness policy."""
        return InitDataVerifier(self.telegram_token, self.max_age_seconds)


def _get(config, section: str, key: str, default: str = "") -> str:
    if not config.has_section(section):
        return default
    return config[section].get(key, default).strip()


def _parse_int(raw: str, name: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def _parse_max_age(raw: str) -> int | None:
    """Parse max_age_seconds; 0 disables the freshness check."""
    if not raw:
        return DEFAULT_MAX_AGE_SECONDS
    value = _parse_int(raw, "max_age_seconds")
    if value < 0:
        raise ConfigError("max_age_seconds must not be negative")
    return value or None


def load_config(config, environ=None) -> Config:
    """Build a Config from a parsed configparser object.

    The bot token comes from URL_RELAY_BOT_TOKEN when set, else from
    [TELEGRAM] bot_token. A missing token raises ConfigError.
    """
    if environ is None:
        environ = os.environ

    telegram_token = environ.get(TOKEN_ENV_VAR, "").strip() or _get(config, "TELEGRAM", "bot_token")
    if not telegram_token:
        raise ConfigError(f"bot token missing: set {TOKEN_ENV_VAR} or [TELEGRAM] bot_token")

    notify = _get(config, "TELEGRAM", "notify_chat_id")
    notify_chat_id = _parse_int(notify, "notify_chat_id") if notify else None

    webapp_url = _get(config, "TELEGRAM", "webapp_url")

    api_port = _parse_int(_get(config, "API", "port", "0") or "0", "port")
    cors_origin = _get(config, "API", "cors_origin", "*") or "*"
    max_age_seconds = _parse_max_age(_get(config, "API", "max_age_seconds"))

    timeout = _get(config, "API", "send_timeout")
    try:
        send_timeout = float(timeout) if timeout else DEFAULT_SEND_TIMEOUT
    except ValueError:
        raise ConfigError(f"send_timeout must be a number, got {timeout!r}")

    return Config(
        telegram_token=telegram_token,
        notify_chat_id=notify_chat_id,
        webapp_url=webapp_url,
        api_port=api_port,
        cors_origin=cors_origin,
        max_age_seconds=max_age_seconds,
        send_timeout=send_timeout,
    )
