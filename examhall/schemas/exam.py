from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional
from datetime import datetime

class ExamBase(BaseModel):
    title: str
    description: Optional[str] = None
    available_from: datetime
    available_until: datetime
    duration: int = Field(..., gt=0, description="Session duration in minutes")
    is_active: bool = False
    total_questions: int = Field(..., ge=0)
    passing_score: float = Field(default=50.0, ge=0, le=100)

    @model_validator(mode="after")
    def check_window(self):
        if self.available_until <= self.available_from:
            raise ValueError("available_until must be later than available_from")
        return self

class ExamCreate(ExamBase):
    pass

class ExamSummary(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    duration: int
    total_questions: int
    passing_score: float
    available_from: datetime
    available_until: datetime

    model_config = ConfigDict(from_attributes=True)
