from typing import Optional

from sqlalchemy.orm import Session

from examhall.crud.base import CRUDBase
from examhall.models.exam import Exam
from examhall.schemas.exam import ExamCreate

class CRUDExam(CRUDBase[Exam, ExamCreate, dict]):

    def get_active(self, db: Session, id: int) -> Optional[Exam]:
        return (
            db.query(Exam)
            .filter(Exam.id == id)
            .filter(Exam.is_active.is_(True))
            .first()
        )

exam = CRUDExam(Exam)
