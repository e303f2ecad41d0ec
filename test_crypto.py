from __future__ import annotations

import os
import unittest
from unittest import mock

from paket.constants import BLOCK_SIZE
from paket.crypto import encrypt, decrypt, random_key, validate_key
from paket.errors import KeySizeError, KeyTypeError, EntropyError, SegmentTooShortError


class CryptoRoundTripTests(unittest.TestCase):
    def test_roundtrip_all_key_sizes(self):
        samples = [b"", b"x", b"hello world\n" * 50, os.urandom(4097)]
        for size in (16, 24, 32):
            key = random_key(size)
            for data in samples:
                blob = encrypt(key, data)
                self.assertEqual(len(blob), BLOCK_SIZE + len(data))
                self.assertEqual(decrypt(key, blob), data)

    def test_nonce_makes_encodings_differ(self):
        key = random_key(32)
        data = b"same plaintext, twice" * 4
        a = encrypt(key, data)
        b = encrypt(key, data)
        self.assertNotEqual(a[:BLOCK_SIZE], b[:BLOCK_SIZE])
        self.assertNotEqual(a[BLOCK_SIZE:], b[BLOCK_SIZE:])

    def test_wrong_key_returns_garbage_without_error(self):
        # No authentication: decoding with the wrong key "works" and yields junk.
        key = random_key(32)
        other = random_key(32)
        data = os.urandom(256)
        blob = encrypt(key, data)
        out = decrypt(other, blob)
        self.assertEqual(len(out), len(data))
        self.assertNotEqual(out, data)

    def test_corrupted_segment_decodes_to_wrong_bytes(self):
        key = random_key(16)
        data = b"A" * 64
        blob = bytearray(encrypt(key, data))
        blob[BLOCK_SIZE + 3] ^= 0x01
        out = decrypt(key, bytes(blob))
        self.assertEqual(len(out), len(data))
        self.assertNotEqual(out, data)


class CryptoValidationTests(unittest.TestCase):
    def test_invalid_key_lengths(self):
        for n in (0, 8, 15, 17, 31, 33, 64):
            with self.assertRaises(KeySizeError):
                validate_key(b"k" * n)
            with self.assertRaises(KeySizeError):
                encrypt(b"k" * n, b"data")
            with self.assertRaises(KeySizeError):
                decrypt(b"k" * n, b"\x00" * 32)

    def test_non_bytes_key_rejected(self):
        for key in ("k" * 16, None, 16, ["k"] * 32):
            with self.assertRaises(KeyTypeError):
                validate_key(key)  # type: ignore[arg-type]
            with self.assertRaises(KeyTypeError):
                encrypt(key, b"data")  # type: ignore[arg-type]
        validate_key(bytearray(24))
        validate_key(memoryview(bytes(32)))

    def test_decrypt_short_blob(self):
        with self.assertRaises(SegmentTooShortError):
            decrypt(b"k" * 16, b"\x00" * (BLOCK_SIZE - 1))
        # exactly one block decodes to empty plaintext
        self.assertEqual(decrypt(b"k" * 16, b"\x00" * BLOCK_SIZE), b"")

    def test_random_key_bounds(self):
        for n in (16, 20, 24, 32):
            self.assertEqual(len(random_key(n)), n)
        for n in (0, 15, 33):
            with self.assertRaises(KeySizeError):
                random_key(n)
        self.assertNotEqual(random_key(32), random_key(32))

    def test_entropy_failure(self):
        with mock.patch("paket.crypto.get_random_bytes", side_effect=OSError("no entropy")):
            with self.assertRaises(EntropyError):
                encrypt(b"k" * 32, b"data")
            with self.assertRaises(EntropyError):
                random_key(32)


if __name__ == "__main__":
    unittest.main()
