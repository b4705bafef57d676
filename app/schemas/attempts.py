"""Pydantic schemas for the attempts API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class AttemptRequest(BaseModel):
    """Identifies the key an attempt is recorded against."""

    identifier: str = Field(
        ...,
        description="Throttled subject, typically an e-mail address. Case-insensitive.",
        examples=["user@example.com"],
    )
    action: str = Field(
        ...,
        description="Attempt namespace such as 'login' or 'register'. Case-sensitive.",
        examples=["login"],
    )


class AttemptCheckResponse(BaseModel):
    """Returned when an attempt is allowed."""

    allowed: bool = Field(..., description="Always true; denied attempts return HTTP 429.")
    remaining_attempts: int = Field(
        ..., description="Attempts left in the current window after this one."
    )


class AttemptStatusResponse(BaseModel):
    """Advisory view of a key, for UI warnings such as '2 attempts remaining'."""

    tracked: bool = Field(..., description="False when no attempts are recorded for the key.")
    attempts: int | None = Field(default=None, description="Attempts in the current window.")
    remaining: int | None = Field(default=None, description="Attempts left before blocking.")
    blocked: bool | None = Field(default=None, description="Whether the key is cooling down.")
    blocked_until: datetime | None = Field(
        default=None, description="UTC time when the block ends."
    )


class CleanupResponse(BaseModel):
    """Outcome of a manual cleanup pass."""

    removed: int = Field(..., description="Expired entries evicted by this pass.")
    entries: int = Field(..., description="Entries still tracked after the pass.")
