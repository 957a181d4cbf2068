"""Progress API endpoints."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..db.schemas import UserRecord
from ..services import TutorServices, get_services
from .auth import get_current_user

router = APIRouter(prefix="/progress", tags=["Progress"])


@router.get("/overview")
async def progress_overview(
    current_user: UserRecord = Depends(get_current_user),
    services: TutorServices = Depends(get_services),
) -> Dict[str, Any]:
    """Progress derived from the user's completed quizzes."""
    progress = await services.quiz_engine.progress_overview(current_user.id)
    return {"success": True, "data": {"progress": progress}}
