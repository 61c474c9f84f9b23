from pydantic import BaseModel, ConfigDict
from typing import Optional, List
from datetime import datetime

from examhall.core.constants import SubmissionActionEnum
from examhall.schemas.answer import AnswerItem
from examhall.schemas.exam import ExamSummary
from examhall.schemas.question import QuestionWithCorrectAnswer
from examhall.schemas.student_exam import StudentExam

class Result(BaseModel):
    id: int
    student_exam_id: int
    score: float
    correct_answers: int
    total_questions: int
    rank: Optional[int] = None
    time_spent: int
    submitted_at: datetime

    model_config = ConfigDict(from_attributes=True)

class SubmitRequest(BaseModel):
    answers: Optional[List[AnswerItem]] = None

class AnswerStats(BaseModel):
    new: int = 0
    updated: int = 0

class SubmissionOutcome(BaseModel):
    result: Result
    session: StudentExam
    exam: ExamSummary
    action: SubmissionActionEnum
    passed: bool
    answer_stats: AnswerStats = AnswerStats()

class AnswerDetail(BaseModel):
    question_id: int
    chosen_answer: str
    is_correct: Optional[bool] = None
    question: QuestionWithCorrectAnswer

class StudentResult(BaseModel):
    result: Result
    session: StudentExam
    exam: ExamSummary
    passed: bool
    detailed_answers: List[AnswerDetail] = []

class RankingEntry(BaseModel):
    rank: Optional[int] = None
    student_id: int
    student_name: Optional[str] = None
    score: float
    correct_answers: int
    total_questions: int
    time_spent: int
    submitted_at: datetime

class ExamRankings(BaseModel):
    exam_id: int
    rankings: List[RankingEntry] = []
    total_participants: int = 0

class RankingRecalculation(BaseModel):
    exam_id: int
    updated: int

class ResultHistoryEntry(BaseModel):
    result: Result
    exam: ExamSummary
    passed: bool
