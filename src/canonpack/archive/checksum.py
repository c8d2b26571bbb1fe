"""Content digests over raw archive bytes (npm ``shasum`` compatible)."""

import hashlib
import hmac
from typing import Optional


def sha_sum(buffer: bytes) -> bytes:
    return hashlib.sha1(buffer).digest()


def hash_to_hex_string(digest: bytes) -> str:
    return digest.hex()


def shasum_hex(buffer: bytes) -> str:
    return hash_to_hex_string(sha_sum(buffer))


def verify_shasum(buffer: bytes, expected: Optional[str]) -> bool:
    """True when ``expected`` matches, or when there is nothing to compare against."""
    if not expected:
        return True
    return hmac.compare_digest(shasum_hex(buffer), expected.strip().lower())
