"""Health check payload."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Service liveness plus database reachability; ``degraded`` when the database is unreachable."""

    status: Literal["ok", "degraded"] = "ok"
    version: str
    environment: str = Field(description="APP_ENV the service runs under")
    database: Literal["connected", "disconnected"]
