"""Identity Rules — username normalization shared by registration and guest posting.

Invariants:
    - A normalized username matches USERNAME_PATTERN and the length bounds
    - BROADCAST_RECIPIENT never normalizes (the pattern excludes it)
"""

import re

from palaver.core.domain_types import (
    USERNAME_MAX_LENGTH, USERNAME_MIN_LENGTH, USERNAME_PATTERN,
)
from palaver.core.errors import ValidationFailedError

_USERNAME_RE = re.compile(USERNAME_PATTERN)


def normalize_username(username: str | None, field: str = "username") -> str:
    name = (username or "").strip()
    if not name:
        raise ValidationFailedError("Username is required", field)
    if not USERNAME_MIN_LENGTH <= len(name) <= USERNAME_MAX_LENGTH:
        raise ValidationFailedError(
            f"Username must be {USERNAME_MIN_LENGTH}-{USERNAME_MAX_LENGTH} characters",
            field,
        )
    if not _USERNAME_RE.match(name):
        raise ValidationFailedError(
            "Username may only contain letters, digits, '_', '.' and '-'", field,
        )
    return name
