"""Pydantic schema for the public health check."""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    db: bool
    version: str
