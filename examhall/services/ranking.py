import logging
from typing import Optional
from sqlalchemy.orm import Session

from examhall.core.config import settings
from examhall.core.database import unit_of_work
from examhall.core.exceptions import NotFoundError
from examhall.crud.exam import exam as crud_exam
from examhall.crud.result import result as crud_result
from examhall.crud.student_exam import student_exam as crud_student_exam
from examhall.schemas.result import ExamRankings, RankingEntry, RankingRecalculation

logger = logging.getLogger(__name__)


class RankingService:
    """Dense 1..N ranking of an exam's results by score desc, time spent asc.

    Ranks are always rewritten from the full ordering; they are never patched
    one row at a time.
    """

    def rank_of(self, db: Session, exam_id: int, student_exam_id: int) -> int:
        ordered = crud_result.get_ordered_for_exam(db, exam_id=exam_id)
        for position, result in enumerate(ordered, start=1):
            if result.student_exam_id == student_exam_id:
                return position
        return len(ordered) + 1

    def _write_ranks(self, db: Session, exam_id: int) -> int:
        ordered = crud_result.get_ordered_for_exam(db, exam_id=exam_id, for_update=True)
        for position, result in enumerate(ordered, start=1):
            if result.rank != position:
                result.rank = position
                db.add(result)
        db.flush()
        return len(ordered)

    def recompute_all(self, db: Session, exam_id: int, commit: bool = True) -> RankingRecalculation:
        """Rewrite every rank for the exam.

        With commit=False the caller owns the transaction (used while a
        submission is being written); otherwise this runs as its own unit of work.
        """
        if commit:
            with unit_of_work(db):
                updated = self._write_ranks(db, exam_id)
        else:
            updated = self._write_ranks(db, exam_id)

        logger.info(f"Recalculated rankings for exam {exam_id}: {updated} results")
        return RankingRecalculation(exam_id=exam_id, updated=updated)

    def recalculate_exam(self, db: Session, exam_id: int) -> RankingRecalculation:
        if not crud_exam.get(db, id=exam_id):
            raise NotFoundError("Exam not found.", reason="exam_unavailable")
        return self.recompute_all(db, exam_id)

    def get_top_rankings(self, db: Session, exam_id: int, limit: Optional[int] = None) -> ExamRankings:
        exam = crud_exam.get(db, id=exam_id)
        if not exam:
            raise NotFoundError("Exam not found.", reason="exam_unavailable")

        limit = limit or settings.DEFAULT_RANKINGS_LIMIT
        rows = crud_result.get_top_for_exam(db, exam_id=exam_id, limit=limit)
        rankings = [
            RankingEntry(
                rank=result.rank,
                student_id=session.student_id,
                student_name=student.full_name,
                score=result.score,
                correct_answers=result.correct_answers,
                total_questions=result.total_questions,
                time_spent=result.time_spent,
                submitted_at=result.submitted_at,
            )
            for result, session, student in rows
        ]
        return ExamRankings(
            exam_id=exam_id,
            rankings=rankings,
            total_participants=crud_student_exam.count_participants(db, exam_id=exam_id),
        )


ranking_service = RankingService()
