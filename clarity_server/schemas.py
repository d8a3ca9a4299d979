# clarity_server/schemas.py
"""
Pydantic schemas for the Clarity backend.

Wire format is camelCase (the mobile app sends and reads it that way), so
every multi-word field carries an alias.

- /api/routines/from-text         (TextRoutineIn, TextRoutineOut)
- /api/routines/from-text/simple  (TextRoutineIn, SimpleRoutineOut)
- /api/routines/from-photo        (PhotoRoutineIn, PhotoRoutineOut)
- /api/quick-routine              (QuickRoutineIn, QuickRoutineOut)
"""

from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class PlanType(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


def resolve_plan_type(value: Any) -> PlanType:
    """Only the exact string "premium" unlocks premium; everything else is free."""
    if isinstance(value, PlanType):
        return value
    return PlanType.PREMIUM if value == "premium" else PlanType.FREE


class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class TextRoutineIn(_Wire):
    # left untyped so an unexpected value resolves to "free" instead of a 400
    plan_type: Any = Field(default=None, alias="planType")
    struggle: Optional[str] = None
    goal: Optional[str] = None


class PhotoRoutineIn(_Wire):
    plan_type: Any = Field(default=None, alias="planType")
    room_name: Optional[str] = Field(default=None, alias="roomName")
    goal: Optional[str] = None
    notes: Optional[str] = None
    # base64 without the "data:image/jpeg;base64," prefix
    image_base64: Optional[str] = Field(default=None, alias="imageBase64")


class QuickRoutineIn(_Wire):
    preset: Optional[str] = None
    plan_type: Any = Field(default=None, alias="planType")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class RoutineStep(_Wire):
    title: Optional[str] = None
    description: str = ""
    duration_minutes: Optional[Union[int, float]] = Field(
        default=None, alias="durationMinutes"
    )


class TextRoutineOut(_Wire):
    plan_type: PlanType = Field(alias="planType")
    summary: str = ""
    steps: List[RoutineStep] = Field(default_factory=list)


class PhotoRoutineOut(_Wire):
    plan_type: PlanType = Field(alias="planType")
    scan_summary: str = Field(default="", alias="scanSummary")
    hotspots: List[str] = Field(default_factory=list)
    summary: str = ""
    steps: List[RoutineStep] = Field(default_factory=list)


class QuickRoutineOut(_Wire):
    preset: str
    title: str
    subtitle: str
    steps: List[str] = Field(default_factory=list)
    plan_type: PlanType = Field(alias="planType")


class SimpleRoutineOut(_Wire):
    """Legacy plain-text flow: steps are bare strings."""

    plan_type: PlanType = Field(alias="planType")
    steps: List[str] = Field(default_factory=list)


class HealthOut(BaseModel):
    status: str = "ok"
