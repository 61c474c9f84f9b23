from dataclasses import dataclass, field
from typing import Dict, List, Optional
from sqlalchemy.orm import Session

from examhall.core.exceptions import NotFoundError
from examhall.crud.answer import answer as crud_answer
from examhall.crud.exam import exam as crud_exam
from examhall.crud.question import question as crud_question
from examhall.crud.student_exam import student_exam as crud_student_exam


@dataclass
class AnswerScore:
    question_id: int
    chosen_answer: str
    correct_answer: Optional[str]
    is_correct: bool


@dataclass
class ScoreResult:
    total_questions: int
    correct_answers: int
    score: float
    answers: List[AnswerScore] = field(default_factory=list)

    @property
    def correctness(self) -> Dict[int, bool]:
        return {a.question_id: a.is_correct for a in self.answers}


def calculate_percentage(correct_answers: int, total_questions: int) -> float:
    # The denominator is the exam's declared question count, not the number answered
    if total_questions <= 0:
        return 0.0
    return round(correct_answers / total_questions * 100, 2)


class ScoringService:

    def score(self, db: Session, student_exam_id: int) -> ScoreResult:
        session = crud_student_exam.get(db, id=student_exam_id)
        if not session:
            raise NotFoundError("Exam session not found.", reason="session_not_found")

        exam = crud_exam.get(db, id=session.exam_id)
        if not exam:
            raise NotFoundError("Exam not found for this session.", reason="exam_unavailable")

        answers = crud_answer.get_by_session(db, student_exam_id=student_exam_id)
        if not answers:
            return ScoreResult(total_questions=exam.total_questions, correct_answers=0, score=0.0)

        correct_map = crud_question.get_correct_answer_map(db, question_ids=[a.question_id for a in answers])

        scored = []
        for answer in answers:
            correct = correct_map.get(answer.question_id)
            scored.append(AnswerScore(
                question_id=answer.question_id,
                chosen_answer=answer.chosen_answer,
                correct_answer=correct,
                is_correct=correct is not None and correct == answer.chosen_answer,
            ))

        correct_count = sum(1 for a in scored if a.is_correct)
        return ScoreResult(
            total_questions=exam.total_questions,
            correct_answers=correct_count,
            score=calculate_percentage(correct_count, exam.total_questions),
            answers=scored,
        )

    def apply_correctness(self, db: Session, student_exam_id: int, score_result: ScoreResult) -> None:
        crud_answer.set_correctness(db, student_exam_id=student_exam_id, correctness=score_result.correctness)


scoring_service = ScoringService()
