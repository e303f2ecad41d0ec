from __future__ import annotations

import hashlib
import hmac


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def digest_matches(data: bytes, expected_hex: str) -> bool:
    """Compare the SHA-256 of ``data`` against a stored hex digest.

    Stored digests are compared case-insensitively and in constant time.
    """
    if not expected_hex:
        return False
    actual = sha256_hex(data).encode("ascii")
    return hmac.compare_digest(actual, expected_hex.strip().lower().encode("utf-8"))
