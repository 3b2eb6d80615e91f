"""Auth Schemas — registration and login payloads.

Invariants:
    - Username: 3-32 chars of [A-Za-z0-9_.-], stripped; "*" can never pass
    - Password: 6-72 chars, never stripped (whitespace is part of the secret)
"""

from pydantic import BaseModel, Field, field_validator

from palaver.core.domain_types import (
    CREDENTIAL_MAX_BYTES, CREDENTIAL_MIN_LENGTH,
    USERNAME_MAX_LENGTH, USERNAME_MIN_LENGTH, USERNAME_PATTERN,
)


class RegisterRequest(BaseModel):
    username: str = Field(
        min_length=USERNAME_MIN_LENGTH,
        max_length=USERNAME_MAX_LENGTH,
        pattern=USERNAME_PATTERN,
    )
    password: str = Field(
        min_length=CREDENTIAL_MIN_LENGTH, max_length=CREDENTIAL_MAX_BYTES,
    )

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("password")
    @classmethod
    def fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > CREDENTIAL_MAX_BYTES:
            raise ValueError(f"password cannot exceed {CREDENTIAL_MAX_BYTES} bytes")
        return v


class LoginRequest(BaseModel):
    """Login accepts any non-empty strings; mismatches are a uniform 401."""
    username: str = Field(min_length=1, max_length=256)
    password: str = Field(min_length=1, max_length=256)


class AuthStatusResponse(BaseModel):
    user: str | None = None
