"""Pydantic configuration model for scoped context."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ScopeConfig(BaseModel):
    timer_key: str = Field("operationTimeMs", min_length=1)  # key holding elapsed ms for timed scopes
