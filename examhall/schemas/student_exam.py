from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from examhall.core.constants import StartOutcomeEnum
from examhall.schemas.answer import SavedAnswer
from examhall.schemas.exam import ExamSummary
from examhall.schemas.question import QuestionPublic

class StartSessionRequest(BaseModel):
    exam_id: int = Field(..., gt=0)

class RemainingTime(BaseModel):
    millis_left: int
    hours: int
    minutes: int
    seconds: int
    has_expired: bool
    effective_deadline: datetime

    model_config = ConfigDict(from_attributes=True)

class StudentExam(BaseModel):
    id: int
    student_id: int
    exam_id: int
    started_at: datetime
    submitted_at: Optional[datetime] = None
    time_spent: Optional[int] = None
    last_activity_at: datetime

    model_config = ConfigDict(from_attributes=True)

class ExamSessionState(BaseModel):
    """Everything the client needs to render (or resume) an exam in progress."""
    session: StudentExam
    exam: ExamSummary
    questions: List[QuestionPublic] = []
    saved_answers: List[SavedAnswer] = []
    remaining_time: RemainingTime
    needs_auto_submit: bool = False
    outcome: Optional[StartOutcomeEnum] = None

class SessionStatus(BaseModel):
    session_id: int
    exam_id: int
    started_at: datetime
    submitted_at: Optional[datetime] = None
    remaining_time: RemainingTime
    needs_auto_submit: bool
    answered_count: int
    total_questions: int
    exam_deadline: datetime
