from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from examhall.core.constants import EXAM_SUBMITTED_EVENT, StartOutcomeEnum
from examhall.core.exceptions import ExpiredError
from examhall.schemas.answer import AnswerBatchResult, AnswerBatchSave, AnswerSave, AnswerSaveResult
from examhall.schemas.response import APIResponse
from examhall.schemas.result import SubmissionOutcome, SubmitRequest
from examhall.schemas.student_exam import ExamSessionState, SessionStatus, StartSessionRequest
from examhall.schemas.user import UserContext
from examhall.services.exam_session import exam_session_service
from examhall.utils import deps
from examhall.utils.events import event_bus
from examhall.utils.exam_timer import utcnow

router = APIRouter()


async def _publish_submission(notification: Optional[Dict[str, Any]]):
    if notification:
        await event_bus.publish(EXAM_SUBMITTED_EVENT, notification)


@router.post("/start", response_model=APIResponse[ExamSessionState], status_code=status.HTTP_201_CREATED)
async def start_exam_session(
    *,
    db: Session = Depends(deps.get_db),
    session_in: StartSessionRequest,
    response: Response,
    context: UserContext = Depends(deps.get_current_student)
):
    state = exam_session_service.start(db, student_id=context.user.id, exam_id=session_in.exam_id, now=utcnow())
    if state.outcome == StartOutcomeEnum.RESUMED:
        response.status_code = status.HTTP_200_OK
        return APIResponse(message="Resuming existing exam session", data=state)
    return APIResponse(message="Exam session started successfully", data=state)


@router.get("/active", response_model=APIResponse[ExamSessionState])
async def get_active_session(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_student)
):
    state = exam_session_service.get_active_session(db, student_id=context.user.id, now=utcnow())
    return APIResponse(message="Active session retrieved successfully", data=state)


@router.get("/{session_id}", response_model=APIResponse[ExamSessionState])
async def get_session_details(
    *,
    db: Session = Depends(deps.get_db),
    session_id: int,
    context: UserContext = Depends(deps.get_current_student)
):
    state = exam_session_service.get_session_details(db, session_id=session_id, student_id=context.user.id, now=utcnow())
    return APIResponse(message="Session details retrieved successfully", data=state)


@router.get("/{session_id}/resume", response_model=APIResponse[ExamSessionState])
async def resume_exam_session(
    *,
    db: Session = Depends(deps.get_db),
    session_id: int,
    context: UserContext = Depends(deps.get_current_student)
):
    state = exam_session_service.resume(db, session_id=session_id, student_id=context.user.id, now=utcnow())
    return APIResponse(message="Session resumed successfully", data=state)


@router.post("/{session_id}/answers", response_model=APIResponse[AnswerSaveResult])
async def save_answer(
    *,
    db: Session = Depends(deps.get_db),
    session_id: int,
    answer_in: AnswerSave,
    context: UserContext = Depends(deps.get_current_student)
):
    try:
        saved = exam_session_service.save_answer(
            db,
            session_id=session_id,
            student_id=context.user.id,
            question_id=answer_in.question_id,
            chosen_answer=answer_in.chosen_answer,
            now=utcnow(),
            is_autosave=answer_in.is_autosave
        )
    except ExpiredError as e:
        await _publish_submission(e.notification)
        raise
    message = "Answer auto-saved" if answer_in.is_autosave else "Answer saved successfully"
    return APIResponse(message=message, data=saved)


@router.post("/{session_id}/answers/batch", response_model=APIResponse[AnswerBatchResult])
async def save_answers(
    *,
    db: Session = Depends(deps.get_db),
    session_id: int,
    batch_in: AnswerBatchSave,
    context: UserContext = Depends(deps.get_current_student)
):
    try:
        saved = exam_session_service.save_answers(
            db, session_id=session_id, student_id=context.user.id, answers=batch_in.answers, now=utcnow()
        )
    except ExpiredError as e:
        await _publish_submission(e.notification)
        raise
    return APIResponse(message=f"{saved.count} answers saved successfully", data=saved)


@router.post("/{session_id}/submit", response_model=APIResponse[SubmissionOutcome])
async def submit_exam(
    *,
    db: Session = Depends(deps.get_db),
    session_id: int,
    submit_in: Optional[SubmitRequest] = None,
    context: UserContext = Depends(deps.get_current_student)
):
    record = exam_session_service.submit_record(
        db, session_id=session_id, student_id=context.user.id, now=utcnow(), last_minute_answers=submit_in.answers if submit_in else None
    )
    outcome = exam_session_service.to_outcome(record)

    await _publish_submission(exam_session_service.build_notification(record))
    return APIResponse(message="Exam submitted successfully", data=outcome)


@router.delete("/{session_id}", response_model=APIResponse[None])
async def cancel_exam_session(
    *,
    db: Session = Depends(deps.get_db),
    session_id: int,
    context: UserContext = Depends(deps.get_current_student)
):
    exam_session_service.cancel(db, session_id=session_id, student_id=context.user.id, now=utcnow())
    return APIResponse(message="Exam session cancelled successfully")


@router.get("/{session_id}/status", response_model=APIResponse[SessionStatus])
async def get_session_status(
    *,
    db: Session = Depends(deps.get_db),
    session_id: int,
    context: UserContext = Depends(deps.get_current_student)
):
    session_status = exam_session_service.status(db, session_id=session_id, student_id=context.user.id, now=utcnow())
    return APIResponse(message="Session status retrieved successfully", data=session_status)
