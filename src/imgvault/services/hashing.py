"""Content addressing for uploaded images."""

import hashlib
import re

DIGEST_LENGTH = 64

_DIGEST_RE = re.compile(r"^[0-9a-f]{64}$")


def digest(data: bytes) -> str:
    """
    SHA-256 of ``data`` as lowercase hex.

    Identical bytes always give the identical digest. The digest is the
    public image identifier and the dedup key, so a cryptographic hash is used.
    """
    return hashlib.sha256(data).hexdigest()


def is_digest(value: str) -> bool:
    """Whether ``value`` has the shape of a digest produced by ``digest``."""
    return bool(_DIGEST_RE.match(value))
