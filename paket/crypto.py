"""AES stream encoding for container segments, backed by PyCryptodomex.

Every segment is laid out as ``nonce || ciphertext`` where the nonce is one
AES block of fresh random bytes and the ciphertext is AES in full-block CFB
mode. The key length picks the AES strength (16/24/32 bytes).

WARNING: this construction is NOT authenticated. :func:`decrypt` succeeds
mechanically for any key and any input of at least one block, returning bytes
of the right length that are garbage when the key is wrong or the segment is
damaged. A successful return says nothing about correctness; compare the
result against a stored digest (see :mod:`paket.hashutil`).
"""

from __future__ import annotations

from Cryptodome.Cipher import AES
from Cryptodome.Random import get_random_bytes

from .constants import BLOCK_SIZE, KEY_SIZES, CFB_SEGMENT_BITS, RANDOM_KEY_MIN, RANDOM_KEY_MAX, DEFAULT_KEY_SIZE
from .errors import KeySizeError, KeyTypeError, EntropyError, SegmentTooShortError


def validate_key(key: bytes) -> None:
    if not isinstance(key, (bytes, bytearray, memoryview)):
        raise KeyTypeError(f"key must be bytes, got {type(key).__name__}")
    if len(key) not in KEY_SIZES:
        raise KeySizeError(f"key must be 16, 24 or 32 bytes long, got {len(key)}")


def _secure_random(length: int) -> bytes:
    try:
        return get_random_bytes(length)
    except OSError as exc:
        raise EntropyError(f"secure random source unavailable: {exc}") from exc


def _cipher(key: bytes, nonce: bytes):
    return AES.new(key, AES.MODE_CFB, iv=nonce, segment_size=CFB_SEGMENT_BITS)


def encrypt(key: bytes, plaintext: bytes) -> bytes:
    """Encode ``plaintext`` as ``nonce || AES-CFB(plaintext)``.

    A new random nonce is drawn per call, so encoding the same plaintext twice
    never yields the same bytes.
    """
    validate_key(key)
    nonce = _secure_random(BLOCK_SIZE)
    return nonce + _cipher(key, nonce).encrypt(plaintext)


def decrypt(key: bytes, blob: bytes) -> bytes:
    """Decode a ``nonce || ciphertext`` segment.

    Unauthenticated: a wrong key or corrupted blob returns garbage of the
    expected length without raising. Verify the output against its digest.
    """
    validate_key(key)
    if len(blob) < BLOCK_SIZE:
        raise SegmentTooShortError(f"encoded segment shorter than one block ({len(blob)} < {BLOCK_SIZE})")
    nonce = blob[:BLOCK_SIZE]
    return _cipher(key, nonce).decrypt(blob[BLOCK_SIZE:])


def random_key(length: int = DEFAULT_KEY_SIZE) -> bytes:
    if not (RANDOM_KEY_MIN <= length <= RANDOM_KEY_MAX):
        raise KeySizeError(f"random key length must be between {RANDOM_KEY_MIN} and {RANDOM_KEY_MAX}, got {length}")
    return _secure_random(length)


__all__ = [
    "encrypt",
    "decrypt",
    "random_key",
    "validate_key",
]
