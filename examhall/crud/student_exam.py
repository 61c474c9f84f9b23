from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session

from examhall.crud.base import CRUDBase
from examhall.models.answer import Answer
from examhall.models.exam import Exam
from examhall.models.student_exam import StudentExam

class CRUDStudentExam(CRUDBase[StudentExam, dict, dict]):

    def get_owned(self, db: Session, *, id: int, student_id: int, for_update: bool = False) -> Optional[StudentExam]:
        query = (
            db.query(StudentExam)
            .filter(StudentExam.id == id)
            .filter(StudentExam.student_id == student_id)
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_by_student_and_exam(self, db: Session, *, student_id: int, exam_id: int,
                                for_update: bool = False) -> Optional[StudentExam]:
        query = (
            db.query(StudentExam)
            .filter(StudentExam.student_id == student_id)
            .filter(StudentExam.exam_id == exam_id)
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_latest_active_for_student(self, db: Session, *, student_id: int) -> Optional[StudentExam]:
        return (
            db.query(StudentExam)
            .filter(StudentExam.student_id == student_id)
            .filter(StudentExam.submitted_at.is_(None))
            .order_by(StudentExam.started_at.desc(), StudentExam.id.desc())
            .first()
        )

    def create_session(self, db: Session, *, student_id: int, exam_id: int, now: datetime) -> StudentExam:
        return self.create(
            db,
            obj_in={
                "student_id": student_id,
                "exam_id": exam_id,
                "started_at": now,
                "last_activity_at": now,
                "submitted_at": None,
            },
            commit=False
        )

    def touch(self, db: Session, *, db_obj: StudentExam, now: datetime) -> None:
        db_obj.last_activity_at = now
        db.add(db_obj)
        db.flush()

    def claim_submission(self, db: Session, *, id: int, submitted_at: datetime, time_spent: int) -> bool:
        """Mark a session submitted only if nobody else got there first.

        Returns False when the row was already submitted (or is gone), which is
        how two racing submissions end up scoring exactly once.
        """
        updated = (
            db.query(StudentExam)
            .filter(StudentExam.id == id)
            .filter(StudentExam.submitted_at.is_(None))
            .update(
                {
                    StudentExam.submitted_at: submitted_at,
                    StudentExam.time_spent: time_spent,
                    StudentExam.last_activity_at: submitted_at,
                },
                synchronize_session=False
            )
        )
        return updated == 1

    def delete_with_answers(self, db: Session, *, id: int) -> None:
        db.query(Answer).filter(Answer.student_exam_id == id).delete(synchronize_session=False)
        db.query(StudentExam).filter(StudentExam.id == id).delete(synchronize_session=False)
        db.flush()

    def get_open_sessions_for_active_exams(self, db: Session) -> List[Tuple[StudentExam, Exam, int]]:
        """Every unsubmitted session of an active exam, with its saved-answer count.

        Sessions of deactivated exams are deliberately left out.
        """
        rows = (
            db.query(StudentExam, Exam, func.count(Answer.id))
            .join(Exam, StudentExam.exam_id == Exam.id)
            .outerjoin(Answer, Answer.student_exam_id == StudentExam.id)
            .filter(StudentExam.submitted_at.is_(None))
            .filter(Exam.is_active.is_(True))
            .group_by(StudentExam.id, Exam.id)
            .order_by(StudentExam.id.asc())
            .all()
        )
        return [(session, exam, int(count)) for session, exam, count in rows]

    def count_participants(self, db: Session, *, exam_id: int) -> int:
        return (
            db.query(func.count(func.distinct(StudentExam.student_id)))
            .filter(StudentExam.exam_id == exam_id)
            .scalar()
        ) or 0

student_exam = CRUDStudentExam(StudentExam)
