from typing import Any
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from dependencies import get_llm
from middleware import get_current_user
from models import CurrentUser
from services.ai_assist import (
    create_professional_summary,
    enhance_project_description,
    organize_experience,
    rewrite_bio,
    summarize_portfolio,
)
from utils.llm_chat import LlmClient
from utils.rate_limiter import ai_requests_per_minute, rate_limiter

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/ai", tags=["ai"])

ACTIONS = {
    "rewrite-bio": rewrite_bio,
    "enhance-project": enhance_project_description,
    "organize-experience": organize_experience,
    "summarize-portfolio": summarize_portfolio,
    "generate-summary": create_professional_summary,
}


class GenerateRequest(BaseModel):
    action: str
    data: Any = None


@router.post("/generate")
async def generate(
    body: GenerateRequest,
    user: CurrentUser = Depends(get_current_user),
    llm: LlmClient = Depends(get_llm),
):
    """Run one AI assist action. Text actions degrade to placeholders."""
    handler = ACTIONS.get(body.action)
    if handler is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid action")

    allowed, error_msg = await rate_limiter.check_rate_limit(
        key=f"ai:{user.id}",
        max_attempts=ai_requests_per_minute(),
        window_minutes=1,
    )
    if not allowed:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=error_msg)

    result = await handler(llm, body.data)
    if result is None:
        logger.error(f"AI action {body.action} produced no result for user {user.id}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="AI generation failed")

    return {"result": result}
