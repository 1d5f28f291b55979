"""Pydantic schemas for operator session tokens."""

from __future__ import annotations

from pydantic import BaseModel


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    role: str | None = None
    expires_in: int | None = None  # seconds until the access token expires


class RefreshRequest(BaseModel):
    refresh_token: str
