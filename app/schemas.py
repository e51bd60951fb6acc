"""Pydantic schemas for the HTTP API layer and the in-process stores."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class AlertOutcome(str, Enum):
    """Result of a single notification dispatch."""

    delivered = "delivered"
    failed = "failed"
    skipped = "skipped"


class EvaluationScheduling(str, Enum):
    """How an ingestion event was handed to the trigger coordinator."""

    scheduled = "scheduled"
    coalesced = "coalesced"
    ignored = "ignored"


class TelemetryIn(BaseModel):
    """Body of a telemetry write."""

    device_id: str = Field(..., min_length=1)
    payload: Dict[str, Any] = Field(default_factory=dict)


class TelemetryAccepted(BaseModel):
    """Immediate response after a telemetry write has been stored."""

    device_id: str
    timestamp: datetime
    evaluation: EvaluationScheduling


class TelemetryRecord(BaseModel):
    """A stored telemetry write."""

    device_id: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime


class AlertAttempt(BaseModel):
    """Record of one attempt to notify about a stable device."""

    device_id: str
    message: str
    created_at: datetime
    outcome: AlertOutcome
    attempts: int = Field(default=0, ge=0)
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.outcome is AlertOutcome.delivered
