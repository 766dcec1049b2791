"""Scheduled job schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class JobResponse(BaseModel):
    """Registered job with its schedule."""

    name: str = Field(..., description="Job name")
    cron: str = Field(..., description="Cron expression")
    timezone: str = Field(..., description="Timezone the cron expression is evaluated in")
    description: str | None = Field(None, description="Job description")
    next_run: datetime | None = Field(None, description="Next scheduled run time")


class JobRunResponse(BaseModel):
    """Result of running a job on demand."""

    name: str = Field(..., description="Job name")
    message: str = Field(..., description="Job result message")
