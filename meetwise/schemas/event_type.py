# meetwise/schemas/event_type.py
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

LocationType = Literal["in_person", "phone", "video", "custom"]

class _EventTypeFields(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    duration_minutes: int = Field(30, gt=0, le=24 * 60)
    location_type: LocationType = "video"
    location: Optional[str] = None
    buffer_before_minutes: int = Field(0, ge=0)
    buffer_after_minutes: int = Field(0, ge=0)
    minimum_notice_hours: int = Field(24, ge=0)
    daily_limit: Optional[int] = Field(None, gt=0)
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def _clean_name(cls, v: str) -> str:
        v = " ".join(v.strip().split())
        if not v:
            raise ValueError("name cannot be empty")
        return v

class EventTypeCreate(_EventTypeFields):
    booking_link: Optional[str] = Field(None, min_length=4, max_length=64, pattern=r"^[A-Za-z0-9_-]+$")

class EventTypeUpdate(BaseModel):
    """Partial update. booking_link is not accepted: it is immutable."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, gt=0, le=24 * 60)
    location_type: Optional[LocationType] = None
    location: Optional[str] = None
    buffer_before_minutes: Optional[int] = Field(None, ge=0)
    buffer_after_minutes: Optional[int] = Field(None, ge=0)
    minimum_notice_hours: Optional[int] = Field(None, ge=0)
    daily_limit: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None

class EventTypeOut(_EventTypeFields):
    id: int
    user_id: int
    booking_link: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)

class GroupEventTypeCreate(_EventTypeFields):
    host_user_ids: list[int] = Field(..., min_length=2)
    booking_link: Optional[str] = Field(None, min_length=4, max_length=64, pattern=r"^[A-Za-z0-9_-]+$")

class GroupEventTypeOut(_EventTypeFields):
    id: int
    booking_link: str
    host_user_ids: list[int]
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
