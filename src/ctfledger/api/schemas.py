"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. not_found")


# --- Events ---
class EventsStatsResponse(BaseModel):
    total_events: int
    min_recorded_ts: int | None
    max_recorded_ts: int | None
    by_type: list[dict[str, Any]]
    by_condition: list[dict[str, Any]]


# --- Conditions ---
class ConditionResponse(BaseModel):
    condition_id: str
    oracle: str
    question_id: str
    outcome_slot_count: int
    payout_denominator: int
    payout_numerators: list[int] = Field(default_factory=list)
    resolved: bool = False


class ConditionsListResponse(BaseModel):
    conditions: list[ConditionResponse]
    total: int


# --- Positions ---
class PositionBalance(BaseModel):
    position_id: str = Field(..., description="Position id as 0x + 64 hex (uint256)")
    balance: str = Field(..., description="Balance as a decimal string (uint256)")


class PositionsResponse(BaseModel):
    owner: str
    positions: list[PositionBalance]
