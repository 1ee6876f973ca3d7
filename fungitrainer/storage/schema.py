from __future__ import annotations

"""Schema constants and Pydantic models for persisted progress and session summaries."""

from datetime import datetime, timezone
from typing import Optional

import pandas as pd
from pydantic import BaseModel, Field, ValidationInfo, field_validator

# --- Constants ---

DTYPES = {
    "session_id": "string",
    "user_id": "string",
    # timezone-aware UTC timestamps
    "session_start": pd.DatetimeTZDtype(tz="UTC"),
    "total_count": "UInt32",
    "correct_count": "UInt32",
    "cumulative_score": "UInt32",
    "longest_streak": "UInt32",
    "accuracy": "UInt8",
    "avg_score": "UInt8",
    "hints_used": "UInt32",
}


def _to_utc(v: datetime) -> datetime:
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


# --- Pydantic models ---

class ProgressRow(BaseModel):
    """Per-(user, achievement) progress. ``earned_at`` is set at most once."""

    user_id: str
    achievement_id: str
    progress: int = Field(default=0, ge=0)
    earned_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def earned(self) -> bool:
        return self.earned_at is not None

    @field_validator("earned_at", "updated_at")
    @classmethod
    def _ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return None if v is None else _to_utc(v)


class SessionSummaryRow(BaseModel):
    session_id: str
    user_id: str
    session_start: datetime
    total_count: int = Field(ge=0, le=4294967295)
    correct_count: int = Field(ge=0, le=4294967295)
    cumulative_score: int = Field(default=0, ge=0, le=4294967295)
    longest_streak: int = Field(default=0, ge=0)
    accuracy: int = Field(default=0, ge=0, le=100)
    avg_score: int = Field(default=0, ge=0, le=100)
    hints_used: int = Field(default=0, ge=0)

    @field_validator("correct_count")
    @classmethod
    def _c_le_total(cls, v: int, info: ValidationInfo) -> int:
        total = int(info.data.get("total_count", 0))
        if v > total:
            raise ValueError("correct_count must be <= total_count")
        return v

    @field_validator("session_start")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return _to_utc(v)
