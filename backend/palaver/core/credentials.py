"""Credential Derivation — salted one-way bcrypt hashes for stored secrets.

Invariants:
    - The raw credential is never returned, stored, or logged
    - verify_credential never raises on a malformed stored hash; it returns False
    - Secrets longer than CREDENTIAL_MAX_BYTES are rejected on hash, unmatched on verify
"""

from functools import lru_cache

import bcrypt

from palaver.core.domain_types import CREDENTIAL_MAX_BYTES
from palaver.core.errors import ValidationFailedError


def _encode(credential: str) -> bytes:
    return credential.encode("utf-8")


def hash_credential(credential: str, rounds: int = 12) -> str:
    """Derive a salted bcrypt hash. CPU-bound: callers run it off the event loop."""
    secret = _encode(credential)
    if not secret:
        raise ValidationFailedError("Credential cannot be empty", "credential")
    if len(secret) > CREDENTIAL_MAX_BYTES:
        raise ValidationFailedError(
            f"Credential cannot exceed {CREDENTIAL_MAX_BYTES} bytes", "credential",
        )
    return bcrypt.hashpw(secret, bcrypt.gensalt(rounds)).decode("ascii")


def verify_credential(credential: str, credential_hash: str) -> bool:
    """Recompute the derivation and compare. Constant-time inside bcrypt."""
    secret = _encode(credential)
    if not secret or len(secret) > CREDENTIAL_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(secret, credential_hash.encode("ascii"))
    except ValueError:
        return False


@lru_cache
def dummy_hash(rounds: int = 12) -> str:
    """Hash checked for unknown usernames so both failure causes cost the same."""
    return bcrypt.hashpw(b"palaver-no-such-user", bcrypt.gensalt(rounds)).decode("ascii")
