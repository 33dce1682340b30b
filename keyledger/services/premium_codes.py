from __future__ import annotations

import re
import secrets

PREMIUM_CODE_ENTROPY_BYTES = 16
PURCHASE_ID_PREFIX = "PUR-"
EMAIL_MAX_LENGTH = 254
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def generate_premium_code(*, prefix: str = "PRM-") -> str:
    """Returns `prefix` followed by 128 random bits as upper-case hex."""
    return f"{prefix}{secrets.token_hex(PREMIUM_CODE_ENTROPY_BYTES).upper()}"


def normalize_premium_code(raw_code: str | None) -> str:
    if raw_code is None:
        return ""
    return raw_code.strip().upper()


def generate_purchase_id() -> str:
    return f"{PURCHASE_ID_PREFIX}{secrets.token_hex(6).upper()}"


def is_valid_email(email: str | None) -> bool:
    if not email:
        return False
    email = email.strip()
    if len(email) > EMAIL_MAX_LENGTH:
        return False
    return _EMAIL_PATTERN.match(email) is not None
