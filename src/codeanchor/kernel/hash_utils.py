"""Hash utilities with explicit encoding rules for stable digests.

Two digest functions live here and they are never interchanged:

- sha256 (``sha256_hex``): local file and category digests. Lowercase hex,
  no prefix.
- keccak-256 (``keccak256_hex``): the ledger's native digest. Used wherever a
  value must match something the contracts compute. Lowercase hex with a
  ``0x`` prefix, matching what the chain returns for ``bytes32``.

Key rules:
- ``str`` input is encoded as UTF-8 before hashing
- Digest concatenation order is the caller's responsibility
- JSON hashed for the ledger keeps insertion order (no key sorting)
"""

import hashlib
import json
from typing import Any, Iterable, Union

from eth_utils import keccak


class DigestFormatError(ValueError):
    """Raised when a value is not a well-formed hex digest."""
    pass


def _to_bytes(content: Union[str, bytes]) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    return content


def sha256_hex(content: Union[str, bytes]) -> str:
    """Compute the SHA256 digest of content.

    Args:
        content: Content as string or bytes

    Returns:
        SHA256 hash as lowercase hex string (64 chars, unprefixed)
    """
    return hashlib.sha256(_to_bytes(content)).hexdigest()


def keccak256_hex(content: Union[str, bytes]) -> str:
    """Compute the keccak-256 digest used by the ledger.

    Args:
        content: Content as string or bytes

    Returns:
        keccak-256 hash as lowercase hex string prefixed with "0x"
    """
    return "0x" + keccak(_to_bytes(content)).hex()


def combine_digests(digests: Iterable[str]) -> str:
    """Hash the concatenation of hex digests, in the order given."""
    return sha256_hex("".join(digests))


def compact_json(obj: Any) -> str:
    """Serialize to compact JSON, preserving key insertion order."""
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def normalize_hex_digest(value: Union[str, bytes]) -> str:
    """Normalize a digest to lowercase ``0x``-prefixed hex.

    Accepts raw ``bytes`` (as returned for ``bytes32``) or a hex string with or
    without the ``0x`` prefix.

    Raises:
        DigestFormatError: If the value is not hex
    """
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = value.strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    if not text or any(c not in "0123456789abcdef" for c in text):
        raise DigestFormatError(f"Not a hex digest: {value!r}")
    return "0x" + text
