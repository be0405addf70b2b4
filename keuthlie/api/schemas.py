from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr

MAX_FIELD_LENGTH = 1024
MAX_TOKEN_LENGTH = 4096


class _StrictRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RegisterRequest(_StrictRequest):
    email: StrictStr = Field(..., min_length=1, max_length=MAX_FIELD_LENGTH)
    username: StrictStr = Field(..., min_length=1, max_length=MAX_FIELD_LENGTH)
    password: StrictStr = Field(..., max_length=MAX_FIELD_LENGTH)


class LoginRequest(_StrictRequest):
    email: StrictStr = Field(..., min_length=1, max_length=MAX_FIELD_LENGTH)
    password: StrictStr = Field(..., max_length=MAX_FIELD_LENGTH)
    service: StrictStr = Field(..., min_length=1, max_length=MAX_FIELD_LENGTH)


class VerifyTokenRequest(_StrictRequest):
    token: StrictStr = Field(..., max_length=MAX_TOKEN_LENGTH)


class PasswordChangeRequest(_StrictRequest):
    email: StrictStr = Field(..., min_length=1, max_length=MAX_FIELD_LENGTH)
    password: StrictStr = Field(..., max_length=MAX_FIELD_LENGTH)
    new_password: StrictStr = Field(..., max_length=MAX_FIELD_LENGTH)


class RevokeRequest(_StrictRequest):
    email: StrictStr = Field(..., min_length=1, max_length=MAX_FIELD_LENGTH)
    password: StrictStr = Field(..., max_length=MAX_FIELD_LENGTH)


class Envelope(BaseModel):
    """Response envelope: ``error`` is 0 on success, a negative code otherwise."""

    error: int = 0
    payload: Optional[Any] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, payload: Any) -> "Envelope":
        return cls(error=0, payload=payload)

    @classmethod
    def failure(cls, code: int, message: str) -> "Envelope":
        return cls(error=code, message=message)

    def body(self) -> dict:
        return self.model_dump(exclude_none=True)
