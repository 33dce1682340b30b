from __future__ import annotations

import hashlib
import hmac
import secrets

ADMIN_KEY_PREFIX = "ADM-"
ADMIN_KEY_ENTROPY_BYTES = 24
ADMIN_KEY_DISPLAY_LENGTH = 12


def normalize_admin_key(raw_key: str | None) -> str:
    if raw_key is None:
        return ""
    return raw_key.strip()


def hash_admin_key(*, admin_key: str, pepper: str) -> str:
    digest = hmac.new(
        pepper.encode("utf-8"),
        admin_key.encode("utf-8"),
        hashlib.sha256,
    )
    return digest.hexdigest()


def generate_admin_key() -> str:
    return f"{ADMIN_KEY_PREFIX}{secrets.token_hex(ADMIN_KEY_ENTROPY_BYTES).upper()}"


def admin_key_display_prefix(admin_key: str) -> str:
    return admin_key[:ADMIN_KEY_DISPLAY_LENGTH]
