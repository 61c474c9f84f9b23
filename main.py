from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from examhall.core.config import settings
from examhall.core.exceptions import ExamSessionError
from examhall.core.logging import configure_logging
from examhall.core.scheduler import start_scheduler, stop_scheduler
from examhall.endpoints import exam_session, submission, result
from examhall.middleware.exceptions import (
    exam_session_exception_handler,
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from examhall.middleware.logging import RequestLoggingMiddleware
from examhall.models import registry  # noqa: F401
from examhall.services import notification  # noqa: F401

configure_logging()

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)

app.add_exception_handler(ExamSessionError, exam_session_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.include_router(exam_session.router, prefix="/exam-session", tags=["Exam Session"])
app.include_router(submission.router, prefix="/submission", tags=["Submission"])
app.include_router(result.router, prefix="/results", tags=["Results"])

@app.on_event("startup")
async def startup_event():
    start_scheduler()

@app.on_event("shutdown")
async def shutdown_event():
    stop_scheduler()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
