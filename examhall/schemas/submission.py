from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any

from examhall.core.constants import SweepActionEnum

class SweepEntry(BaseModel):
    session_id: int
    student_id: int
    exam_id: int
    action: SweepActionEnum
    reason: Optional[str] = None
    answer_count: int = 0
    success: bool = True
    message: str = ""
    score: Optional[float] = None
    notification: Optional[Dict[str, Any]] = Field(default=None, exclude=True)

class RecalculationEntry(BaseModel):
    exam_id: int
    success: bool
    updated: int = 0
    error: Optional[str] = None

class SweepReport(BaseModel):
    checked: int = 0
    auto_submitted: int = 0
    deleted: int = 0
    failed: int = 0
    rankings_recalculated: int = 0
    results: List[SweepEntry] = []
    recalculation_results: List[RecalculationEntry] = []
