# meetwise/schemas/slot.py
from datetime import datetime
from pydantic import BaseModel, Field

class Slot(BaseModel):
    """A bookable interval. UTC bounds are canonical; *_local are for display."""
    slot_start: datetime = Field(..., description="UTC start, used for booking")
    slot_end: datetime
    slot_start_local: datetime = Field(..., description="Start in the requester's time zone")
    slot_end_local: datetime
