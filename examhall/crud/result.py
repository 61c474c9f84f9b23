from typing import List, Optional, Tuple
from sqlalchemy.orm import Session

from examhall.crud.base import CRUDBase
from examhall.models.exam import Exam
from examhall.models.result import Result
from examhall.models.student_exam import StudentExam
from examhall.models.user import User

class CRUDResult(CRUDBase[Result, dict, dict]):

    def get_by_session(self, db: Session, *, student_exam_id: int) -> Optional[Result]:
        return db.query(Result).filter(Result.student_exam_id == student_exam_id).first()

    def get_ordered_for_exam(self, db: Session, *, exam_id: int, for_update: bool = False) -> List[Result]:
        # score desc, time spent asc; id keeps exact ties deterministic
        query = (
            db.query(Result)
            .join(StudentExam, Result.student_exam_id == StudentExam.id)
            .filter(StudentExam.exam_id == exam_id)
            .order_by(Result.score.desc(), Result.time_spent.asc(), Result.id.asc())
        )
        if for_update:
            query = query.with_for_update()
        return query.all()

    def get_top_for_exam(self, db: Session, *, exam_id: int, limit: int = 10) -> List[Tuple[Result, StudentExam, User]]:
        return (
            db.query(Result, StudentExam, User)
            .join(StudentExam, Result.student_exam_id == StudentExam.id)
            .join(User, StudentExam.student_id == User.id)
            .filter(StudentExam.exam_id == exam_id)
            .order_by(Result.rank.asc(), Result.id.asc())
            .limit(limit)
            .all()
        )

    def get_for_student_and_exam(self, db: Session, *, student_id: int, exam_id: int) -> Optional[Tuple[Result, StudentExam, Exam]]:
        return (
            db.query(Result, StudentExam, Exam)
            .join(StudentExam, Result.student_exam_id == StudentExam.id)
            .join(Exam, StudentExam.exam_id == Exam.id)
            .filter(StudentExam.student_id == student_id)
            .filter(StudentExam.exam_id == exam_id)
            .order_by(Result.submitted_at.desc())
            .first()
        )

    def get_history_for_student(self, db: Session, *, student_id: int, skip: int = 0,
                                limit: int = 100) -> List[Tuple[Result, Exam]]:
        return (
            db.query(Result, Exam)
            .join(StudentExam, Result.student_exam_id == StudentExam.id)
            .join(Exam, StudentExam.exam_id == Exam.id)
            .filter(StudentExam.student_id == student_id)
            .order_by(Result.submitted_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

result = CRUDResult(Result)
