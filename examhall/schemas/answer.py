from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List

from examhall.core.config import settings
from examhall.core.constants import AnswerLetterEnum


def normalize_letter(value):
    if isinstance(value, str):
        return value.strip().upper()
    return value


class AnswerItem(BaseModel):
    question_id: int = Field(..., gt=0)
    chosen_answer: AnswerLetterEnum

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("chosen_answer", mode="before")
    @classmethod
    def normalize_chosen_answer(cls, v):
        return normalize_letter(v)

class AnswerSave(AnswerItem):
    is_autosave: bool = False

class AnswerBatchSave(BaseModel):
    answers: List[AnswerItem] = Field(..., min_length=1, max_length=settings.MAX_BATCH_ANSWERS)

class SavedAnswer(BaseModel):
    question_id: int
    chosen_answer: str

    model_config = ConfigDict(from_attributes=True)

class AnswerSaveResult(BaseModel):
    session_id: int
    question_id: int
    chosen_answer: str
    is_autosave: bool = False

class AnswerBatchResult(BaseModel):
    session_id: int
    count: int
