from typing import Dict, List, Optional, Tuple
from sqlalchemy.orm import Session

from examhall.crud.base import CRUDBase
from examhall.models.answer import Answer

ANSWER_CREATED = "created"
ANSWER_UPDATED = "updated"
ANSWER_UNCHANGED = "unchanged"

class CRUDAnswer(CRUDBase[Answer, dict, dict]):

    def get_by_session(self, db: Session, *, student_exam_id: int) -> List[Answer]:
        return (
            db.query(Answer)
            .filter(Answer.student_exam_id == student_exam_id)
            .order_by(Answer.question_id.asc())
            .all()
        )

    def get_by_session_and_question(self, db: Session, *, student_exam_id: int,
                                    question_id: int) -> Optional[Answer]:
        return (
            db.query(Answer)
            .filter(Answer.student_exam_id == student_exam_id)
            .filter(Answer.question_id == question_id)
            .first()
        )

    def count_by_session(self, db: Session, *, student_exam_id: int) -> int:
        return db.query(Answer).filter(Answer.student_exam_id == student_exam_id).count()

    def upsert(self, db: Session, *, student_exam_id: int, question_id: int, chosen_answer: str) -> Tuple[Answer, str]:
        existing = self.get_by_session_and_question(db, student_exam_id=student_exam_id, question_id=question_id)
        if existing:
            if (existing.chosen_answer or "").strip().upper() == chosen_answer.strip().upper():
                return existing, ANSWER_UNCHANGED
            existing.chosen_answer = chosen_answer
            existing.is_correct = None
            db.add(existing)
            db.flush()
            return existing, ANSWER_UPDATED

        new_answer = self.create(
            db,
            obj_in={
                "student_exam_id": student_exam_id,
                "question_id": question_id,
                "chosen_answer": chosen_answer,
                "is_correct": None,
            },
            commit=False
        )
        return new_answer, ANSWER_CREATED

    def set_correctness(self, db: Session, *, student_exam_id: int, correctness: Dict[int, bool]) -> None:
        for answer in self.get_by_session(db, student_exam_id=student_exam_id):
            if answer.question_id in correctness:
                answer.is_correct = correctness[answer.question_id]
                db.add(answer)
        db.flush()

answer = CRUDAnswer(Answer)
