"""Shared Pydantic response models for the Eventide API.

Successful responses are the affected row or a list of rows. Errors use
``{"error": "<message>", "code": "<CODE>"}``.
"""

from __future__ import annotations

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error body."""

    error: str
    code: str


class MessageResponse(BaseModel):
    """Acknowledgement body returned by delete endpoints."""

    message: str


class IdentityOut(BaseModel):
    """The verified caller identity."""

    user_id: str
    email: str
    display_name: str | None = None
    avatar_url: str | None = None


class HealthResponse(BaseModel):
    status: str
