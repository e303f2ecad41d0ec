"""
Paket — random-access encrypted containers.

Many logical files are stored back to back in one blob, each segment encrypted
on its own (AES-CFB with a random per-segment nonce, via PyCryptodomex). An
external table maps every name to its offset, lengths and SHA-256 digests.

- paket.container.Paket: serialized reads through one shared handle (with
  optional digest verification) and lock-free parallel reads through a fresh
  handle per call.
- paket.crypto: segment encode/decode and random key generation.
- paket.table: Descriptor/Table types and JSON persistence.
- paket.writer: builds a blob and its table.

Security note: segments are NOT authenticated. Decoding with a wrong key or a
damaged blob returns garbage without raising; check the ``verified`` flag
returned by Paket.get_file (or run ``paket verify``) before trusting data.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "crypto",
    "table",
    "container",
    "writer",
    "errors",
]

# The programmatic API lives in paket.container/paket.writer; the CLI functions
# in paket.cli (cmd_pack/cmd_unpack/...) take normal parameters too.
