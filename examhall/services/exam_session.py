import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from examhall.core.config import settings
from examhall.core.constants import AnswerLetterEnum, StartOutcomeEnum, SubmissionActionEnum
from examhall.core.database import unit_of_work
from examhall.core.exceptions import (
    AnswerValidationError,
    ConflictError,
    ExpiredError,
    InvalidStateError,
    NotFoundError,
)
from examhall.crud.answer import ANSWER_CREATED, ANSWER_UPDATED, answer as crud_answer
from examhall.crud.exam import exam as crud_exam
from examhall.crud.question import question as crud_question
from examhall.crud.result import result as crud_result
from examhall.crud.student_exam import student_exam as crud_student_exam
from examhall.models.exam import Exam
from examhall.models.result import Result
from examhall.models.student_exam import StudentExam
from examhall.schemas.answer import AnswerBatchResult, AnswerItem, AnswerSaveResult, SavedAnswer
from examhall.schemas.exam import ExamSummary
from examhall.schemas.question import QuestionPublic
from examhall.schemas.result import AnswerStats, Result as ResultSchema, SubmissionOutcome
from examhall.schemas.student_exam import (
    ExamSessionState,
    RemainingTime as RemainingTimeSchema,
    SessionStatus,
    StudentExam as StudentExamSchema,
)
from examhall.services.ranking import ranking_service
from examhall.services.scoring import scoring_service
from examhall.utils.exam_timer import (
    capped_elapsed_minutes,
    elapsed_minutes,
    is_auto_submit_due,
    remaining_time_for,
    within_cancel_grace,
)

logger = logging.getLogger(__name__)

VALID_LETTERS = {letter.value for letter in AnswerLetterEnum}


@dataclass
class StartSessionResult:
    outcome: StartOutcomeEnum
    session: Optional[StudentExam] = None
    reason: Optional[str] = None


@dataclass
class SubmissionRecord:
    result: Result
    session: StudentExam
    exam: Exam
    action: SubmissionActionEnum
    new_answers: int = 0
    updated_answers: int = 0


class _SubmissionRaceLost(Exception):
    pass


class ExamSessionService:

    def _get_owned_session(self, db: Session, session_id: int, student_id: int,
                           for_update: bool = False) -> StudentExam:
        session = crud_student_exam.get_owned(db, id=session_id, student_id=student_id, for_update=for_update)
        if not session:
            raise NotFoundError("Exam session not found.", reason="session_not_found")
        return session

    def _get_exam_for_session(self, db: Session, session: StudentExam) -> Exam:
        exam = crud_exam.get(db, id=session.exam_id)
        if not exam:
            raise NotFoundError("Exam not found for this session.", reason="exam_unavailable")
        return exam

    def _require_not_submitted(self, session: StudentExam):
        if session.submitted_at is not None:
            raise InvalidStateError(
                "Exam already submitted. Cannot modify a submitted exam.",
                reason="already_submitted",
                context={"session_id": session.id, "exam_id": session.exam_id}
            )

    def _require_open_exam(self, exam: Exam, now: datetime):
        if now < exam.available_from:
            raise InvalidStateError("Exam is not available yet.", reason="exam_not_started", context={"exam_id": exam.id})
        if now >= exam.available_until:
            raise InvalidStateError(
                "Exam availability period has ended.", reason="exam_window_closed", context={"exam_id": exam.id}
            )

    def _normalize_letter(self, letter: str) -> str:
        normalized = str(letter or "").strip().upper()
        if normalized not in VALID_LETTERS:
            raise AnswerValidationError("Chosen answer must be A, B, C, or D.", reason="invalid_answer")
        return normalized

    def _validate_answer_items(self, db: Session, exam_id: int, answers: List[AnswerItem]):
        question_ids = [item.question_id for item in answers]
        if len(question_ids) != len(set(question_ids)):
            raise AnswerValidationError("Duplicate question_ids found in submission.", reason="duplicate_question")

        valid_ids = crud_question.get_ids_by_exam(db, exam_id=exam_id)
        invalid = [qid for qid in question_ids if qid not in valid_ids]
        if invalid:
            raise AnswerValidationError(
                f"Invalid question_id(s): {invalid}. All questions must belong to the exam.",
                reason="invalid_question",
                context={"invalid_question_ids": invalid}
            )

    def build_session_state(self, db: Session, session: StudentExam, exam: Exam, now: datetime,
                            include_questions: bool = True,
                            outcome: Optional[StartOutcomeEnum] = None) -> ExamSessionState:
        questions = crud_question.get_by_exam(db, exam_id=exam.id) if include_questions else []
        saved_answers = crud_answer.get_by_session(db, student_exam_id=session.id)
        return ExamSessionState(
            session=StudentExamSchema.model_validate(session),
            exam=ExamSummary.model_validate(exam),
            questions=[QuestionPublic.model_validate(q) for q in questions],
            saved_answers=[SavedAnswer.model_validate(a) for a in saved_answers],
            remaining_time=RemainingTimeSchema.model_validate(remaining_time_for(session, exam, now)),
            needs_auto_submit=is_auto_submit_due(session, exam, now),
            outcome=outcome,
        )

    def _find_or_create_session(self, db: Session, student_id: int, exam: Exam, now: datetime) -> StartSessionResult:
        try:
            with unit_of_work(db):
                existing = crud_student_exam.get_by_student_and_exam(
                    db, student_id=student_id, exam_id=exam.id, for_update=True
                )
                if existing is not None:
                    if existing.submitted_at is None:
                        return StartSessionResult(StartOutcomeEnum.RESUMED, existing)
                    return StartSessionResult(StartOutcomeEnum.REJECTED, existing, reason="already_completed")

                session = crud_student_exam.create_session(db, student_id=student_id, exam_id=exam.id, now=now)
        except IntegrityError:
            logger.warning(f"Concurrent start for student {student_id} on exam {exam.id}, re-fetching session")
            return self._resolve_start_conflict(db, student_id, exam.id)

        return StartSessionResult(StartOutcomeEnum.CREATED, session)

    def _resolve_start_conflict(self, db: Session, student_id: int, exam_id: int) -> StartSessionResult:
        existing = crud_student_exam.get_by_student_and_exam(db, student_id=student_id, exam_id=exam_id)
        if existing is None:
            raise ConflictError(
                "Could not start the exam session, please try again.",
                reason="start_conflict",
                context={"exam_id": exam_id}
            )
        if existing.submitted_at is None:
            return StartSessionResult(StartOutcomeEnum.RESUMED, existing)
        return StartSessionResult(StartOutcomeEnum.REJECTED, existing, reason="already_completed")

    def start(self, db: Session, student_id: int, exam_id: int, now: datetime) -> ExamSessionState:
        exam = crud_exam.get_active(db, id=exam_id)
        if not exam:
            raise NotFoundError("Exam not found or not active.", reason="exam_unavailable", context={"exam_id": exam_id})

        self._require_open_exam(exam, now)

        started = self._find_or_create_session(db, student_id, exam, now)
        if started.outcome == StartOutcomeEnum.REJECTED:
            raise InvalidStateError(
                "You have already completed this exam.",
                reason=started.reason,
                context={"exam_id": exam_id, "session_id": started.session.id}
            )

        if started.outcome == StartOutcomeEnum.CREATED:
            logger.info(f"Student {student_id} started exam {exam_id} (session {started.session.id})")
        else:
            logger.info(f"Student {student_id} resumed exam {exam_id} (session {started.session.id})")

        return self.build_session_state(db, started.session, exam, now, outcome=started.outcome)

    def get_active_session(self, db: Session, student_id: int, now: datetime) -> ExamSessionState:
        session = crud_student_exam.get_latest_active_for_student(db, student_id=student_id)
        if not session:
            raise NotFoundError("No active exam session found.", reason="no_active_session")
        exam = self._get_exam_for_session(db, session)
        return self.build_session_state(db, session, exam, now)

    def get_session_details(self, db: Session, session_id: int, student_id: int, now: datetime) -> ExamSessionState:
        session = self._get_owned_session(db, session_id, student_id)
        exam = self._get_exam_for_session(db, session)
        return self.build_session_state(db, session, exam, now, include_questions=False)

    def resume(self, db: Session, session_id: int, student_id: int, now: datetime) -> ExamSessionState:
        session = self._get_owned_session(db, session_id, student_id)
        self._require_not_submitted(session)
        exam = self._get_exam_for_session(db, session)

        if is_auto_submit_due(session, exam, now):
            raise ExpiredError("Exam time has expired.", session_id=session.id, exam_id=exam.id)

        return self.build_session_state(db, session, exam, now, outcome=StartOutcomeEnum.RESUMED)

    def _close_expired_session(self, db: Session, session: StudentExam, exam: Exam,
                               now: datetime) -> Optional[SubmissionRecord]:
        # Answered sessions are submitted on the spot; empty ones are left for the sweeper to delete
        if crud_answer.count_by_session(db, student_exam_id=session.id) == 0:
            return None
        return self.submit_due_session(db, session, exam, now)

    def _reject_if_expired(self, db: Session, session: StudentExam, exam: Exam, now: datetime):
        if not remaining_time_for(session, exam, now).has_expired:
            return

        session_id, exam_id = session.id, exam.id
        record = self._close_expired_session(db, session, exam, now)
        raise ExpiredError(
            "Exam time has expired. No further answers can be saved.",
            session_id=session_id,
            exam_id=exam_id,
            auto_submitted=record is not None,
            notification=self.build_notification(record) if record is not None else None
        )

    def save_answer(self, db: Session, session_id: int, student_id: int, question_id: int,
                    chosen_answer: str, now: datetime, is_autosave: bool = False) -> AnswerSaveResult:
        letter = self._normalize_letter(chosen_answer)
        session = self._get_owned_session(db, session_id, student_id)
        self._require_not_submitted(session)
        exam = self._get_exam_for_session(db, session)

        if not crud_question.get_in_exam(db, question_id=question_id, exam_id=exam.id):
            raise NotFoundError(
                "Question not found in this exam.", reason="question_not_found", context={"question_id": question_id}
            )

        self._reject_if_expired(db, session, exam, now)

        try:
            with unit_of_work(db):
                locked = self._get_owned_session(db, session_id, student_id, for_update=True)
                self._require_not_submitted(locked)
                crud_answer.upsert(db, student_exam_id=session_id, question_id=question_id, chosen_answer=letter)
                crud_student_exam.touch(db, db_obj=locked, now=now)
        except IntegrityError:
            raise ConflictError(
                "Answer was saved concurrently, please retry.",
                reason="answer_conflict",
                context={"question_id": question_id}
            )

        return AnswerSaveResult(
            session_id=session_id, question_id=question_id, chosen_answer=letter, is_autosave=is_autosave
        )

    def save_answers(self, db: Session, session_id: int, student_id: int, answers: List[AnswerItem],
                     now: datetime) -> AnswerBatchResult:
        if not answers:
            raise AnswerValidationError("No answers provided.", reason="empty_batch")

        session = self._get_owned_session(db, session_id, student_id)
        self._require_not_submitted(session)
        exam = self._get_exam_for_session(db, session)

        # Every item is checked before any of them is written
        self._validate_answer_items(db, exam.id, answers)
        letters = {item.question_id: self._normalize_letter(item.chosen_answer) for item in answers}

        self._reject_if_expired(db, session, exam, now)

        try:
            with unit_of_work(db):
                locked = self._get_owned_session(db, session_id, student_id, for_update=True)
                self._require_not_submitted(locked)
                for question_id, letter in letters.items():
                    crud_answer.upsert(db, student_exam_id=session_id, question_id=question_id, chosen_answer=letter)
                crud_student_exam.touch(db, db_obj=locked, now=now)
        except IntegrityError:
            raise ConflictError("Answers were saved concurrently, please retry.", reason="answer_conflict")

        return AnswerBatchResult(session_id=session_id, count=len(letters))

    def _already_submitted(self, db: Session, session_id: int, exam: Exam) -> SubmissionRecord:
        session = crud_student_exam.get(db, id=session_id)
        result = crud_result.get_by_session(db, student_exam_id=session_id)
        if session is None or result is None:
            raise InvalidStateError(
                "Exam already submitted.", reason="already_submitted", context={"session_id": session_id}
            )
        return SubmissionRecord(result=result, session=session, exam=exam, action=SubmissionActionEnum.ALREADY_SUBMITTED)

    def _run_submission(self, db: Session, session: StudentExam, exam: Exam, now: datetime, time_spent: int,
                        first_action: SubmissionActionEnum,
                        last_minute_answers: Optional[Dict[int, str]] = None) -> SubmissionRecord:
        session_id, student_id = session.id, session.student_id
        new_count = updated_count = 0

        try:
            with unit_of_work(db):
                locked = crud_student_exam.get_owned(db, id=session_id, student_id=student_id, for_update=True)
                if locked is None or locked.submitted_at is not None:
                    raise _SubmissionRaceLost()

                for question_id, letter in (last_minute_answers or {}).items():
                    _, change = crud_answer.upsert(
                        db, student_exam_id=session_id, question_id=question_id, chosen_answer=letter
                    )
                    if change == ANSWER_CREATED:
                        new_count += 1
                    elif change == ANSWER_UPDATED:
                        updated_count += 1

                existing_result = crud_result.get_by_session(db, student_exam_id=session_id)

                if not crud_student_exam.claim_submission(db, id=session_id, submitted_at=now, time_spent=time_spent):
                    raise _SubmissionRaceLost()
                db.expire(locked)

                if existing_result is not None and new_count == 0 and updated_count == 0:
                    existing_result.submitted_at = now
                    db.add(existing_result)
                    db.flush()
                    result, action = existing_result, SubmissionActionEnum.RESUBMITTED_NO_CHANGES
                else:
                    score_result = scoring_service.score(db, session_id)
                    scoring_service.apply_correctness(db, session_id, score_result)
                    values = {
                        "score": score_result.score,
                        "correct_answers": score_result.correct_answers,
                        "total_questions": score_result.total_questions,
                        "time_spent": time_spent,
                        "submitted_at": now,
                    }
                    if existing_result is not None:
                        result = crud_result.update(db, db_obj=existing_result, obj_in=values, commit=False)
                        action = SubmissionActionEnum.RESUBMITTED_WITH_CHANGES
                    else:
                        result = crud_result.create(db, obj_in={"student_exam_id": session_id, **values}, commit=False)
                        action = first_action
                    ranking_service.recompute_all(db, exam.id, commit=False)
        except _SubmissionRaceLost:
            logger.info(f"Session {session_id} was submitted concurrently, returning stored result")
            return self._already_submitted(db, session_id, exam)
        except IntegrityError:
            logger.warning(f"Duplicate result for session {session_id}, returning stored result")
            return self._already_submitted(db, session_id, exam)

        logger.info(
            f"Session {session_id} {action.value}: score {result.score}, rank {result.rank}, "
            f"time spent {time_spent}m"
        )
        return SubmissionRecord(
            result=result,
            session=locked,
            exam=exam,
            action=action,
            new_answers=new_count,
            updated_answers=updated_count,
        )

    def submit_due_session(self, db: Session, session: StudentExam, exam: Exam, now: datetime) -> SubmissionRecord:
        """Close a session nobody submitted in time, scoring it on its saved answers.

        Time spent is capped at the exam duration. Shared by the sweeper and
        by requests that arrive after the deadline.
        """
        time_spent = capped_elapsed_minutes(session.started_at, exam.duration, now)
        return self._run_submission(db, session, exam, now, time_spent, SubmissionActionEnum.AUTO_SUBMITTED)

    def submit_record(self, db: Session, session_id: int, student_id: int, now: datetime,
                      last_minute_answers: Optional[List[AnswerItem]] = None) -> SubmissionRecord:
        session = self._get_owned_session(db, session_id, student_id)
        exam = self._get_exam_for_session(db, session)

        if session.submitted_at is not None:
            return self._already_submitted(db, session.id, exam)

        if last_minute_answers:
            self._validate_answer_items(db, exam.id, last_minute_answers)
        letters = {item.question_id: self._normalize_letter(item.chosen_answer) for item in last_minute_answers or []}

        if remaining_time_for(session, exam, now).has_expired:
            # Late answers are dropped; the session closes on what was saved in time
            session_id, exam_id = session.id, exam.id
            record = self._close_expired_session(db, session, exam, now)
            if record is None:
                raise ExpiredError(
                    "Exam time has expired and no answers were saved.", session_id=session_id, exam_id=exam_id
                )
            return record

        time_spent = elapsed_minutes(session.started_at, now)
        return self._run_submission(
            db, session, exam, now, time_spent, SubmissionActionEnum.FIRST_SUBMISSION, last_minute_answers=letters
        )

    def submit(self, db: Session, session_id: int, student_id: int, now: datetime,
               last_minute_answers: Optional[List[AnswerItem]] = None) -> SubmissionOutcome:
        record = self.submit_record(db, session_id, student_id, now, last_minute_answers)
        return self.to_outcome(record)

    def to_outcome(self, record: SubmissionRecord) -> SubmissionOutcome:
        return SubmissionOutcome(
            result=ResultSchema.model_validate(record.result),
            session=StudentExamSchema.model_validate(record.session),
            exam=ExamSummary.model_validate(record.exam),
            action=record.action,
            passed=record.result.score >= record.exam.passing_score,
            answer_stats=AnswerStats(new=record.new_answers, updated=record.updated_answers),
        )

    def build_notification(self, record: SubmissionRecord) -> Optional[Dict[str, Any]]:
        if record.action == SubmissionActionEnum.ALREADY_SUBMITTED:
            return None
        return {
            "session_id": record.session.id,
            "student_id": record.session.student_id,
            "exam_id": record.exam.id,
            "exam_title": record.exam.title,
            "score": record.result.score,
            "rank": record.result.rank,
            "passed": record.result.score >= record.exam.passing_score,
            "action": record.action.value,
        }

    def cancel(self, db: Session, session_id: int, student_id: int, now: datetime) -> None:
        session = self._get_owned_session(db, session_id, student_id)
        if session.submitted_at is not None:
            raise InvalidStateError(
                "Cannot cancel an already submitted exam.",
                reason="already_submitted",
                context={"session_id": session_id}
            )

        if not within_cancel_grace(session.started_at, now):
            raise InvalidStateError(
                f"Exam sessions can only be cancelled within {settings.CANCEL_GRACE_MINUTES} minutes of starting.",
                reason="cancel_grace_expired",
                context={"session_id": session_id, "started_at": session.started_at.isoformat()}
            )

        exam_id = session.exam_id
        with unit_of_work(db):
            locked = self._get_owned_session(db, session_id, student_id, for_update=True)
            self._require_not_submitted(locked)
            crud_student_exam.delete_with_answers(db, id=session_id)
            db.expunge(locked)

        logger.info(f"Student {student_id} cancelled session {session_id} for exam {exam_id}")

    def status(self, db: Session, session_id: int, student_id: int, now: datetime) -> SessionStatus:
        session = self._get_owned_session(db, session_id, student_id)
        exam = self._get_exam_for_session(db, session)
        return SessionStatus(
            session_id=session.id,
            exam_id=session.exam_id,
            started_at=session.started_at,
            submitted_at=session.submitted_at,
            remaining_time=RemainingTimeSchema.model_validate(remaining_time_for(session, exam, now)),
            needs_auto_submit=is_auto_submit_due(session, exam, now),
            answered_count=crud_answer.count_by_session(db, student_exam_id=session.id),
            total_questions=exam.total_questions,
            exam_deadline=exam.available_until,
        )


exam_session_service = ExamSessionService()
