from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from examhall.schemas.response import APIResponse
from examhall.schemas.result import ExamRankings, RankingRecalculation, ResultHistoryEntry, StudentResult
from examhall.schemas.user import UserContext
from examhall.services.ranking import ranking_service
from examhall.services.result import result_service
from examhall.utils import deps

router = APIRouter()


@router.get("/history", response_model=APIResponse[List[ResultHistoryEntry]])
async def get_result_history(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_student),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100)
):
    history = result_service.get_history(db, student_id=context.user.id, skip=skip, limit=limit)
    return APIResponse(message="Result history retrieved successfully", data=history)


@router.get("/exam/{exam_id}", response_model=APIResponse[StudentResult])
async def get_exam_result(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_student)
):
    result = result_service.get_student_result(db, student_id=context.user.id, exam_id=exam_id)
    return APIResponse(message="Result retrieved successfully", data=result)


@router.get("/exam/{exam_id}/rankings", response_model=APIResponse[ExamRankings])
async def get_exam_rankings(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    limit: Optional[int] = Query(None, ge=1, le=100),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    rankings = ranking_service.get_top_rankings(db, exam_id=exam_id, limit=limit)
    return APIResponse(message="Rankings retrieved successfully", data=rankings)


@router.post("/exam/{exam_id}/rankings/recalculate", response_model=APIResponse[RankingRecalculation])
async def recalculate_exam_rankings(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_admin)
):
    recalculation = ranking_service.recalculate_exam(db, exam_id)
    return APIResponse(message="Rankings recalculated successfully", data=recalculation)
