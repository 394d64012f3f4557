from __future__ import annotations

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=8, max_length=200)


class UserOut(BaseModel):
    id: str
    email: str
    name: str | None
    role: str
    provider: str | None
    csrf_token: str | None = None  # For X-CSRF-Token header on mutating requests
