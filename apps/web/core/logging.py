"""
Logging helpers.

RedactSecretsFilter keeps provider tokens and card data out of log output.
It is installed on the console handler in settings.LOGGING.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any

REDACTED = "[REDACTED]"

SENSITIVE_KEYS = frozenset(
    {
        "access_token",
        "accessToken",
        "oauth_token",
        "refresh_token",
        "refreshToken",
        "payment_token",
        "paymentToken",
        "nonce",
        "token_id",
        "tokenId",
        "card_number",
        "cardNumber",
        "cvv",
        "api_key",
        "apiKey",
    }
)

_KEY_VALUE_PATTERN = re.compile(
    r"(?P<key>\b(?:" + "|".join(sorted(SENSITIVE_KEYS)) + r")\b['\"]?\s*[:=]\s*)"
    r"(?P<quote>['\"]?)(?P<value>[^'\"\s,}]+)"
)
_BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+")


def redact(value: Any) -> Any:
    """Return a copy of value with sensitive mapping keys masked."""
    if isinstance(value, Mapping):
        return {
            k: REDACTED if k in SENSITIVE_KEYS else redact(v) for k, v in value.items()
        }
    if isinstance(value, list | tuple):
        return type(value)(redact(v) for v in value)
    if isinstance(value, str):
        return redact_text(value)
    return value


def redact_text(text: str) -> str:
    """Mask key=value / key: value pairs and bearer tokens inside free text."""
    text = _KEY_VALUE_PATTERN.sub(
        lambda m: f"{m.group('key')}{m.group('quote')}{REDACTED}", text
    )
    return _BEARER_PATTERN.sub(rf"\1{REDACTED}", text)


class RedactSecretsFilter(logging.Filter):
    """Mask secrets in a record's message and %-style arguments."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_text(record.msg)
        if isinstance(record.args, Mapping):
            record.args = redact(record.args)
        elif isinstance(record.args, tuple):
            record.args = tuple(redact(arg) for arg in record.args)
        return True
