from pydantic import BaseModel, Field
from typing import Generic, TypeVar, Optional, Any, Dict

DataType = TypeVar("DataType")

class APIResponse(BaseModel, Generic[DataType]):
    """Envelope for every successful exam hall response."""
    message: str = Field(..., description="Outcome of the call, e.g. 'Exam submitted successfully'.")
    data: Optional[DataType] = Field(None, description="Session, answer, result or sweep payload, if the call returns one.")

class ErrorDetail(BaseModel):
    code: str = Field(..., description="Stable error kind such as NOT_FOUND, INVALID_STATE, EXPIRED or CONFLICT")
    message: str = Field(..., description="Explanation a student or admin can read")
    details: Optional[Dict[str, Any]] = Field(None, description="Machine-readable reason plus session/exam ids where known")

class ErrorResponse(BaseModel):
    """Body returned for every failed request."""
    error: ErrorDetail = Field(..., description="What went wrong")
    timestamp: str = Field(..., description="UTC time the error was rendered, ISO 8601")
    path: str = Field(..., description="Route that failed, e.g. /exam-session/12/submit")
    request_id: Optional[str] = Field(None, description="Matches the X-Request-ID response header and log lines")
