from typing import Dict, List, Optional, Set
from sqlalchemy.orm import Session

from examhall.crud.base import CRUDBase
from examhall.models.question import Question
from examhall.schemas.question import QuestionCreate

class CRUDQuestion(CRUDBase[Question, QuestionCreate, dict]):
    def get_by_exam(self, db: Session, *, exam_id: int) -> List[Question]:
        return (
            db.query(self.model)
            .filter(self.model.exam_id == exam_id)
            .order_by(self.model.id.asc())
            .all()
        )

    def get_in_exam(self, db: Session, *, question_id: int, exam_id: int) -> Optional[Question]:
        return (
            db.query(self.model)
            .filter(self.model.id == question_id)
            .filter(self.model.exam_id == exam_id)
            .first()
        )

    def get_ids_by_exam(self, db: Session, *, exam_id: int) -> Set[int]:
        rows = db.query(self.model.id).filter(self.model.exam_id == exam_id).all()
        return {row[0] for row in rows}

    def get_correct_answer_map(self, db: Session, *, question_ids: List[int]) -> Dict[int, str]:
        if not question_ids:
            return {}
        rows = (
            db.query(self.model.id, self.model.correct_answer)
            .filter(self.model.id.in_(question_ids))
            .all()
        )
        return {row[0]: row[1] for row in rows}

question = CRUDQuestion(Question)
