# meetwise/schemas/availability.py
from datetime import time
from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict

class AvailabilityRuleIn(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0=Sunday .. 6=Saturday")
    start_time: time = Field(..., examples=["09:00"])
    end_time: time = Field(..., examples=["17:00"])
    is_available: bool = True

    @model_validator(mode="after")
    def _start_before_end(self):
        if self.start_time >= self.end_time:
            raise ValueError("end_time must be after start_time")
        return self

class AvailabilityRuleOut(AvailabilityRuleIn):
    id: int
    user_id: int
    model_config = ConfigDict(from_attributes=True)

class AvailabilityReplace(BaseModel):
    """Full replacement of a host's weekly rules."""
    rules: list[AvailabilityRuleIn] = Field(default_factory=list)
