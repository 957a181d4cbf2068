"""Code review API endpoints."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..db.schemas import UserRecord
from ..services import TutorServices, get_services
from .auth import get_current_user

router = APIRouter(prefix="/code", tags=["Code"])


class AnalyzeCodeRequest(BaseModel):
    code: str
    language: str = "javascript"
    analysis_results: Optional[Dict[str, Any]] = None


@router.post("/analyze")
async def analyze_code(
    request: AnalyzeCodeRequest,
    current_user: UserRecord = Depends(get_current_user),
    services: TutorServices = Depends(get_services),
) -> Dict[str, Any]:
    """Review a snippet and store it as a code submission."""
    submission = await services.code_reviewer.analyze_code(
        current_user.id,
        request.code,
        language=request.language,
        analysis_results=request.analysis_results,
    )
    return {
        "success": True,
        "data": {
            "submission": submission.model_dump(),
            "feedback": submission.feedback_provided,
            "language": submission.language,
        },
    }


@router.get("/submissions")
async def list_submissions(
    current_user: UserRecord = Depends(get_current_user),
    services: TutorServices = Depends(get_services),
) -> Dict[str, Any]:
    submissions = await services.code_reviewer.list_submissions(current_user.id)
    return {
        "success": True,
        "data": {"submissions": [submission.model_dump() for submission in submissions]},
    }


@router.delete("/{submission_id}")
async def delete_submission(
    submission_id: str,
    current_user: UserRecord = Depends(get_current_user),
    services: TutorServices = Depends(get_services),
) -> Dict[str, Any]:
    await services.code_reviewer.delete_submission(current_user.id, submission_id)
    return {"success": True}
