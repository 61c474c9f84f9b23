import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Set, Tuple

from sqlalchemy.orm import Session

from examhall.core.constants import AutoSubmitReasonEnum, SweepActionEnum
from examhall.core.database import unit_of_work
from examhall.crud.answer import answer as crud_answer
from examhall.crud.exam import exam as crud_exam
from examhall.crud.student_exam import student_exam as crud_student_exam
from examhall.schemas.submission import RecalculationEntry, SweepEntry, SweepReport
from examhall.services.exam_session import exam_session_service
from examhall.services.ranking import ranking_service
from examhall.utils.exam_timer import auto_submit_reason

logger = logging.getLogger(__name__)


@dataclass
class _DueSession:
    session_id: int
    student_id: int
    exam_id: int
    reason: AutoSubmitReasonEnum


class AutoSubmissionService:
    """Closes sessions whose deadline passed or that were abandoned.

    Each session is handled in its own unit of work, so one failure is
    recorded in the report and the sweep carries on with the rest.
    """

    def _collect_due_sessions(self, db: Session, now: datetime) -> Tuple[int, List[_DueSession]]:
        open_sessions = crud_student_exam.get_open_sessions_for_active_exams(db)
        due = []
        for session, exam, _ in open_sessions:
            reason = auto_submit_reason(session, exam, now)
            if reason is not None:
                due.append(_DueSession(session.id, session.student_id, exam.id, reason))
        return len(open_sessions), due

    def _delete_empty_session(self, db: Session, due: _DueSession) -> Optional[bool]:
        """Delete the session unless an answer slipped in since it was collected.

        Returns None when the session was closed or removed in the meantime.
        """
        with unit_of_work(db):
            locked = crud_student_exam.get_owned(
                db, id=due.session_id, student_id=due.student_id, for_update=True
            )
            if locked is None or locked.submitted_at is not None:
                return None
            if crud_answer.count_by_session(db, student_exam_id=due.session_id) > 0:
                return False
            crud_student_exam.delete_with_answers(db, id=due.session_id)
            db.expunge(locked)
        return True

    def _process_session(self, db: Session, due: _DueSession, now: datetime,
                         dirty_exams: Set[int]) -> Optional[SweepEntry]:
        session = crud_student_exam.get(db, id=due.session_id)
        if session is None or session.submitted_at is not None:
            logger.debug(f"Session {due.session_id} closed before the sweep reached it")
            return None

        answer_count = crud_answer.count_by_session(db, student_exam_id=due.session_id)

        if answer_count == 0:
            deleted = self._delete_empty_session(db, due)
            if deleted is None:
                logger.debug(f"Session {due.session_id} closed before it could be deleted")
                return None
            if deleted:
                dirty_exams.add(due.exam_id)
                logger.info(f"Deleted empty session {due.session_id} (exam {due.exam_id}, {due.reason.value})")
                return SweepEntry(
                    session_id=due.session_id,
                    student_id=due.student_id,
                    exam_id=due.exam_id,
                    action=SweepActionEnum.DELETED_EMPTY,
                    reason=f"{due.reason.value}_empty",
                    answer_count=0,
                    message="Deleted session with no answers",
                )

        session = crud_student_exam.get(db, id=due.session_id)
        exam = crud_exam.get(db, id=due.exam_id)
        record = exam_session_service.submit_due_session(db, session, exam, now)
        dirty_exams.add(due.exam_id)
        logger.info(
            f"Auto-submitted session {due.session_id} (exam {due.exam_id}, {due.reason.value}): "
            f"score {record.result.score}"
        )
        return SweepEntry(
            session_id=due.session_id,
            student_id=due.student_id,
            exam_id=due.exam_id,
            action=SweepActionEnum.AUTO_SUBMITTED,
            reason=due.reason.value,
            answer_count=crud_answer.count_by_session(db, student_exam_id=due.session_id),
            score=record.result.score,
            message=f"Auto-submitted with {record.action.value}",
            notification=exam_session_service.build_notification(record),
        )

    def _recalculate(self, db: Session, exam_ids: Set[int]) -> List[RecalculationEntry]:
        entries = []
        for exam_id in sorted(exam_ids):
            try:
                recalculation = ranking_service.recompute_all(db, exam_id)
                entries.append(RecalculationEntry(exam_id=exam_id, success=True, updated=recalculation.updated))
            except Exception as e:
                db.rollback()
                logger.error(f"Failed to recalculate rankings for exam {exam_id}: {e}", exc_info=True)
                entries.append(RecalculationEntry(exam_id=exam_id, success=False, error=str(e)))
        return entries

    def run_sweep(self, db: Session, now: datetime) -> SweepReport:
        checked, due_sessions = self._collect_due_sessions(db, now)
        report = SweepReport(checked=checked)
        dirty_exams: Set[int] = set()

        for due in due_sessions:
            try:
                entry = self._process_session(db, due, now, dirty_exams)
            except Exception as e:
                db.rollback()
                logger.error(f"Failed to auto-submit session {due.session_id}: {e}", exc_info=True)
                entry = SweepEntry(
                    session_id=due.session_id,
                    student_id=due.student_id,
                    exam_id=due.exam_id,
                    action=SweepActionEnum.FAILED,
                    reason=due.reason.value,
                    success=False,
                    message=str(e),
                )
            if entry is not None:
                report.results.append(entry)

        report.recalculation_results = self._recalculate(db, dirty_exams)
        report.auto_submitted = sum(1 for e in report.results if e.action == SweepActionEnum.AUTO_SUBMITTED)
        report.deleted = sum(1 for e in report.results if e.action == SweepActionEnum.DELETED_EMPTY)
        report.failed = sum(1 for e in report.results if not e.success)
        report.rankings_recalculated = sum(1 for r in report.recalculation_results if r.success)

        logger.info(
            f"Sweep at {now.isoformat()}: {checked} open, {len(due_sessions)} due, "
            f"{report.auto_submitted} submitted, {report.deleted} deleted, {report.failed} failed"
        )
        return report


auto_submission_service = AutoSubmissionService()
