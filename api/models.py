"""
Pydantic models for liveness responses.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class LastCycleInfo(BaseModel):
    """Summary of the most recent completed cycle."""
    cycle_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    success: bool
    new_items: int = Field(default=0, ge=0)
    failed_collections: int = Field(default=0, ge=0)
    summary_delivered: Optional[bool] = None


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="Monitor version")
    cycle_running: bool = Field(default=False, description="Whether a cycle is in progress")
    last_cycle: Optional[LastCycleInfo] = Field(default=None, description="Most recent completed cycle")
