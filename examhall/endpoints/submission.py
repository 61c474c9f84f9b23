from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from examhall.core.constants import EXAM_SUBMITTED_EVENT
from examhall.schemas.response import APIResponse
from examhall.schemas.submission import SweepReport
from examhall.schemas.user import UserContext
from examhall.services.auto_submission import auto_submission_service
from examhall.utils import deps
from examhall.utils.events import event_bus
from examhall.utils.exam_timer import utcnow

router = APIRouter()


@router.post("/auto-check", response_model=APIResponse[SweepReport])
async def run_auto_submission_check(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_admin)
):
    report = auto_submission_service.run_sweep(db, now=utcnow())
    for entry in report.results:
        if entry.notification:
            await event_bus.publish(EXAM_SUBMITTED_EVENT, entry.notification)
    return APIResponse(
        message=f"Auto-submission check completed: {report.auto_submitted} submitted, {report.deleted} deleted",
        data=report
    )
