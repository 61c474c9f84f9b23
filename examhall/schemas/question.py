from pydantic import BaseModel, ConfigDict
from typing import Optional

from examhall.core.constants import AnswerLetterEnum, DifficultyEnum

class QuestionCreate(BaseModel):
    exam_id: int
    question_text: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    correct_answer: AnswerLetterEnum
    subject: str
    difficulty: DifficultyEnum = DifficultyEnum.MEDIUM
    explanation: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)

class QuestionPublic(BaseModel):
    # What a student sees while taking the exam: never the correct answer
    id: int
    question_text: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    subject: str
    difficulty: str

    model_config = ConfigDict(from_attributes=True)

class QuestionWithCorrectAnswer(QuestionPublic):
    # This schema is for result review and admin views
    correct_answer: str
    explanation: Optional[str] = None
