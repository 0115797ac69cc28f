"""Telegram Mini App initData HMAC-SHA256 validation.

Validates the initData string sent by the Telegram WebApp SDK and extracts
the authenticated user. Pure functions, no I/O: every failure comes back as
a Rejected outcome, never as an exception.

Reference: https://core.telegram.org/bots/webapps#validating-data-received-via-the-mini-app
"""

import hashlib
import hmac
import json
import time
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import unquote


class RejectReason(str, Enum):
    MALFORMED_FIELD = "MalformedField"
    DUPLICATE_FIELD = "DuplicateField"
    MISSING_HASH = "MissingHash"
    SIGNATURE_MISMATCH = "SignatureMismatch"
    MISSING_AUTH_DATE = "MissingAuthDate"
    EXPIRED = "Expired"
    MISSING_USER = "MissingUser"
    MALFORMED_USER = "MalformedUser"
    VERIFICATION_FAILED = "VerificationFailed"


@dataclass(frozen=True)
class WebAppUser:
    id: int
    first_name: str = ""
    last_name: str = ""
    username: str = ""
    language_code: str = ""
    is_premium: bool = False
    is_bot: bool = False
    photo_url: str = ""


@dataclass(frozen=True)
class Verified:
    user: WebAppUser
    auth_date: int | None

    ok = True


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason

    ok = False


VerificationOutcome = Verified | Rejected


class _Reject(Exception):
    """Internal short-circuit carrying a rejection reason."""

    def __init__(self, reason: RejectReason):
        super().__init__(reason.value)
        self.reason = reason


def verify_init_data(
    init_data: str,
    bot_token: str,
    now: float | None = None,
    max_age_seconds: int | None = None,
) -> VerificationOutcome:
    """Validate Telegram initData and return a Verified or Rejected outcome.

    max_age_seconds=None skips the auth_date freshness check. The bot token
    is only used as HMAC key material and never appears in the outcome.
    """
    try:
        return _verify(init_data, bot_token, now, max_age_seconds)
    except _Reject as e:
        return Rejected(e.reason)
    except Exception:
        return Rejected(RejectReason.VERIFICATION_FAILED)


def _verify(
    init_data: str, bot_token: str, now: float | None, max_age_seconds: int | None,
) -> Verified:
    params = parse_init_data(init_data)

    received_hash = params.pop("hash", "")
    if not received_hash:
        raise _Reject(RejectReason.MISSING_HASH)

    data_check_string = build_data_check_string(params)
    expected_hash = compute_hash(bot_token, data_check_string)
    if not constant_time_equals(expected_hash, received_hash):
        raise _Reject(RejectReason.SIGNATURE_MISMATCH)

    auth_date = _parse_auth_date(params.get("auth_date"))
    if max_age_seconds is not None:
        if auth_date is None:
            raise _Reject(RejectReason.MISSING_AUTH_DATE)
        if now is None:
            now = time.time()
        if now - auth_date > max_age_seconds:
            raise _Reject(RejectReason.EXPIRED)

    user = _parse_user(params.get("user"))
    return Verified(user=user, auth_date=auth_date)


def parse_init_data(init_data: str) -> dict[str, str]:
    """Decode the whole initData string once, then split it into fields.

    Each '&'-separated part is split on its first '='. Raises _Reject for a
    part without '=' or a key that appears twice.
    """
    decoded = unquote(init_data, errors="strict")
    if not decoded:
        return {}

    result: dict[str, str] = {}
    for part in decoded.split("&"):
        key, sep, value = part.partition("=")
        if not sep:
            raise _Reject(RejectReason.MALFORMED_FIELD)
        if key in result:
            raise _Reject(RejectReason.DUPLICATE_FIELD)
        result[key] = value
    return result


def build_data_check_string(params: dict[str, str]) -> str:
    """Build the sorted newline-separated data-check-string for HMAC."""
    return "\n".join(f"{k}={v}" for k, v in sorted(params.items()))


def derive_secret_key(bot_token: str) -> bytes:
    """Return HMAC-SHA256 of the bot token keyed with "WebAppData"."""
    return hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()


def compute_hash(bot_token: str, data_check_string: str) -> str:
    """Compute the lowercase hex signature Telegram puts in the hash field."""
    return hmac.new(
        derive_secret_key(bot_token), data_check_string.encode(), hashlib.sha256,
    ).hexdigest()


def constant_time_equals(expected: str, received: str) -> bool:
    # compare_digest rejects non-ASCII str, so compare the UTF-8 bytes
    return hmac.compare_digest(expected.encode(), received.encode())


def _parse_auth_date(raw: str | None) -> int | None:
    """Parse a plain ASCII decimal timestamp; anything else is None."""
    if not raw or not raw.isascii() or not raw.isdigit():
        return None
    return int(raw)


def _parse_user(raw: str | None) -> WebAppUser:
    """Build a WebAppUser from the user field's JSON value."""
    if raw is None:
        raise _Reject(RejectReason.MISSING_USER)

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        raise _Reject(RejectReason.MALFORMED_USER)

    if not isinstance(data, dict):
        raise _Reject(RejectReason.MALFORMED_USER)

    user_id = data.get("id")
    # bool is an int subclass
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise _Reject(RejectReason.MALFORMED_USER)

    return WebAppUser(
        id=user_id,
        first_name=str(data.get("first_name") or ""),
        last_name=str(data.get("last_name") or ""),
        username=str(data.get("username") or ""),
        language_code=str(data.get("language_code") or ""),
        is_premium=bool(data.get("is_premium", False)),
        is_bot=bool(data.get("is_bot", False)),
        photo_url=str(data.get("photo_url") or ""),
    )


@dataclass(frozen=True)
class InitDataVerifier:
    """Bot token and freshness policy bound together for repeated use."""

    bot_token: str = field(repr=False)
    max_age_seconds: int | None = None

    def verify(self, init_data: str, now: float | None = None) -> VerificationOutcome:
        return verify_init_data(
            init_data, self.bot_token, now=now, max_age_seconds=self.max_age_seconds,
        )
