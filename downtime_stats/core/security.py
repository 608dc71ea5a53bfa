"""API key material.

Keys look like ``dts_sk_<48 hex>``. Only the SHA-256 digest is stored; a short
clear-text prefix is kept so operators can tell keys apart in listings.
"""

import hashlib
import secrets
import string

API_KEY_PREFIX = "dts_sk_"
_TOKEN_BYTES = 24
_DISPLAY_CHARS = 4  # hex chars shown after API_KEY_PREFIX


def generate_api_key() -> str:
    return API_KEY_PREFIX + secrets.token_hex(_TOKEN_BYTES)


def is_api_key(token: str) -> bool:
    """Shape check run before any database lookup."""
    if not token.startswith(API_KEY_PREFIX):
        return False
    body = token[len(API_KEY_PREFIX):]
    return len(body) == _TOKEN_BYTES * 2 and all(c in string.hexdigits for c in body)


def hash_api_key(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def get_key_prefix(key: str) -> str:
    return key[: len(API_KEY_PREFIX) + _DISPLAY_CHARS]
