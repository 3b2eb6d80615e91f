"""Domain Types — identifiers, delivery modes and shared constants.

Invariants:
    - BROADCAST_RECIPIENT can never be a registered username (see USERNAME_PATTERN)
    - DEFAULT_BROADCAST_CAPACITY is the only source for the broadcast log bound
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

Username = NewType("Username", str)
MessageId = NewType("MessageId", int)


# ─── Constants ───────────────────────────────────────────────────

BROADCAST_RECIPIENT = "*"
DEFAULT_BROADCAST_CAPACITY = 100

USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 32
CREDENTIAL_MIN_LENGTH = 6
# bcrypt only consumes the first 72 bytes of a secret
CREDENTIAL_MAX_BYTES = 72
MESSAGE_MAX_LENGTH = 2000


# ─── Enums ───────────────────────────────────────────────────────

class MessageMode(str, Enum):
    """Deployment variant. A running store uses exactly one."""
    DIRECTED = "directed"
    BROADCAST = "broadcast"
