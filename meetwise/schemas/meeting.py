# meetwise/schemas/meeting.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from meetwise.core.errors import ErrorCode, SchedulingError


# ---------- Requests ----------

class LockSlotRequest(BaseModel):
    host_user_id: int
    event_type_id: Optional[int] = None
    group_event_type_id: Optional[int] = None
    start_time: datetime
    end_time: datetime
    lock_id: str = Field(..., min_length=1, max_length=100)

class BookMeetingRequest(BaseModel):
    event_type_id: int
    host_user_id: int
    start_time: datetime
    participant_name: str = Field(..., examples=["Jane Doe"])
    participant_email: str = Field(..., examples=["jane@example.com"])
    participant_notes: Optional[str] = None
    lock_id: Optional[str] = None
    timezone: Optional[str] = Field(None, description="Guest's display time zone")

class BookGroupMeetingRequest(BaseModel):
    group_event_type_id: int
    start_time: datetime
    participant_name: str
    participant_email: str
    participant_notes: Optional[str] = None
    lock_id: Optional[str] = None
    timezone: Optional[str] = None

class RescheduleRequest(BaseModel):
    new_start_time: datetime
    participant_token: Optional[str] = None

class CancelRequest(BaseModel):
    participant_token: Optional[str] = None
    reason: Optional[str] = Field(None, max_length=500)


# ---------- Results ----------

class LockResult(BaseModel):
    accepted: bool
    lock_id: str
    expires_at: Optional[datetime] = None
    reason: Optional[str] = None

class BookingResult(BaseModel):
    success: bool
    meeting_id: Optional[int] = None
    participant_token: Optional[str] = Field(None, description="Capability for the guest's reschedule/cancel links")
    error: Optional[ErrorCode] = None
    message: Optional[str] = None

    @classmethod
    def failed(cls, exc: SchedulingError) -> "BookingResult":
        return cls(success=False, error=exc.code, message=exc.message)

class OperationResult(BaseModel):
    success: bool
    meeting_id: Optional[int] = None
    already_cancelled: bool = False
    error: Optional[ErrorCode] = None
    message: Optional[str] = None

    @classmethod
    def failed(cls, exc: SchedulingError, meeting_id: Optional[int] = None) -> "OperationResult":
        return cls(success=False, meeting_id=meeting_id, error=exc.code, message=exc.message)


# ---------- Meeting views ----------

class ParticipantOut(BaseModel):
    name: str
    email: str
    is_host: bool
    notes: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)

class MeetingOut(BaseModel):
    id: int
    event_type_id: Optional[int] = None
    group_event_type_id: Optional[int] = None
    host_user_id: int
    title: Optional[str] = None
    start_time: datetime
    end_time: datetime
    timezone: str
    status: str
    calendar_event_id: Optional[str] = None
    calendar_provider: Optional[str] = None
    participants: list[ParticipantOut] = Field(default_factory=list)
    model_config = ConfigDict(from_attributes=True)
