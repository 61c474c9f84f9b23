import logging
from typing import Any, Dict

from examhall.core.constants import EXAM_SUBMITTED_EVENT
from examhall.utils.events import event_bus

logger = logging.getLogger(__name__)


def format_result_message(data: Dict[str, Any]) -> str:
    verdict = "passed" if data.get("passed") else "did not pass"
    rank = data.get("rank")
    rank_msg = f", ranked #{rank}" if rank else ""
    return f"You {verdict} '{data.get('exam_title')}' with {data.get('score')}%{rank_msg}."


async def handle_exam_submitted(data: Dict[str, Any]):
    # Email delivery lives outside this service; we only hand the message over
    logger.info(
        f"Result notification queued for student {data.get('student_id')} "
        f"(session {data.get('session_id')}, {data.get('action')}): {format_result_message(data)}"
    )


event_bus.subscribe(EXAM_SUBMITTED_EVENT, handle_exam_submitted)
