from typing import Any, Dict, Optional
from fastapi import HTTPException, status


class ExamSessionError(HTTPException):
    """Base for failures the exam session flow reports to its callers.

    `code` names the error kind and stays stable across releases; `reason`
    pins down the precise cause so clients can branch without parsing text.
    """
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "BAD_REQUEST"

    def __init__(self, detail: str, *, reason: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=self.status_code, detail=detail)
        self.reason = reason or self.code.lower()
        self.context = context or {}

    def to_details(self) -> Dict[str, Any]:
        return {"reason": self.reason, **self.context}


class NotFoundError(ExamSessionError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class InvalidStateError(ExamSessionError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_STATE"


class ExpiredError(ExamSessionError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "EXPIRED"

    def __init__(self, detail: str, *, session_id: int, exam_id: int, auto_submitted: bool = False,
                 notification: Optional[Dict[str, Any]] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            detail,
            reason="time_expired",
            context={
                "expired": True,
                "session_id": session_id,
                "exam_id": exam_id,
                "auto_submitted": auto_submitted,
                **(context or {}),
            },
        )
        # Result payload of a submission committed while rejecting the request
        self.notification = notification


class ConflictError(ExamSessionError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class AnswerValidationError(ExamSessionError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
