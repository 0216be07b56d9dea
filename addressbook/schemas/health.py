"""Pydantic schemas for health check responses."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness plus database and contact cache reachability."""

    status: Literal["ok", "degraded"] = Field(default="ok", description="Service status")
    environment: str = Field(description="Current app environment (e.g. dev, prod)")
    database: Literal["connected", "disconnected"] = Field(
        description="Result of a trivial query against the database"
    )
    cache_backend: Literal["memory", "redis", "none"] = Field(
        description="Configured contact cache backend"
    )
    cache: Literal["reachable", "unreachable"] = Field(
        description="Contact cache reachability; reads fall back to the database when unreachable"
    )
