"""Portfolio routes - admin editor endpoints and the owner's public content.

Every write goes through PortfolioService.save, which validates the whole
document. Invalid documents surface as PortfolioValidationError and are
turned into a 400 with field errors by the app-level handler.
"""
from typing import Any, Optional
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from dependencies import get_llm, get_portfolio_service
from middleware import get_current_user
from models import AuditAction, CurrentUser
from services.ai_assist import organize_experience
from services.content_editor import (
    EditorError,
    apply_experience_grouping,
    apply_list_operation,
    apply_section,
    count_items,
)
from services.plan_gating import (
    FREE_ITEM_LIMIT,
    UPGRADE_MESSAGE,
    can_add_item,
    can_remove_item,
    check_content_within_plan,
    check_list_change,
    is_gated_section,
    plan_limits_enforced,
)
from services.portfolio_schema import LIST_SECTIONS, default_portfolio_content
from services.portfolio_service import PortfolioNotFoundError, PortfolioService
from utils.audit import create_audit_log, get_audit_logs_for_resource
from utils.llm_chat import LlmClient

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/portfolio", tags=["portfolio"])


class PublishRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_published: bool = Field(alias="isPublished")


class AddItemRequest(BaseModel):
    item: dict = Field(default_factory=dict)


class ReorderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    active_id: str = Field(alias="activeId")
    over_id: str = Field(alias="overId")


class UpdateItemRequest(BaseModel):
    field: str
    value: Any = None


def _record_response(record: dict) -> dict:
    return {
        "portfolioId": record.get("portfolio_id"),
        "content": record.get("content"),
        "version": record.get("version"),
        "isPublished": record.get("is_published"),
        "updatedAt": record.get("updated_at"),
    }


async def _deny(user: CurrentUser, service: PortfolioService, section: str, message: str):
    logger.warning(f"Plan gate denied {section} change for user {user.id}")
    await create_audit_log(
        action=AuditAction.PLAN_GATE_DENIED,
        actor_role=user.role,
        actor_id=user.id,
        resource_type="portfolio",
        metadata={"section": section, "plan": user.plan_tier.value},
        db=service.db,
    )
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)


async def _current_content(service: PortfolioService, owner_id: str) -> Optional[dict]:
    record = await service.get_record(owner_id)
    return record.get("content") if record else None


async def _save(service: PortfolioService, user: CurrentUser, content: Any, section: Optional[str] = None) -> dict:
    try:
        stored, version = await service.save(user.id, content, section=section)
    except PortfolioNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return {"success": True, "version": version, "portfolio": _record_response(stored)}


def _list_section(section: str) -> str:
    if section not in LIST_SECTIONS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown list section '{section}'")
    return section


# ============================================================================
# Admin editor
# ============================================================================

@router.get("/admin")
async def get_admin_portfolio(
    user: CurrentUser = Depends(get_current_user),
    service: PortfolioService = Depends(get_portfolio_service),
):
    """Current record, or null plus the placeholder document on first visit."""
    record = await service.get_record(user.id)
    if record is None:
        return {"portfolio": None, "defaultContent": default_portfolio_content()}
    return {"portfolio": _record_response(record)}


@router.put("/admin")
async def save_portfolio(
    content: Any = Body(...),
    user: CurrentUser = Depends(get_current_user),
    service: PortfolioService = Depends(get_portfolio_service),
):
    """Canonical save: replace the whole document and bump the version."""
    if plan_limits_enforced() and isinstance(content, dict):
        allowed, message = check_content_within_plan(content, user.is_pro)
        if not allowed:
            await _deny(user, service, "document", message)
    return await _save(service, user, content)


@router.put("/admin/sections/{section}")
async def save_section(
    section: str,
    value: Any = Body(...),
    user: CurrentUser = Depends(get_current_user),
    service: PortfolioService = Depends(get_portfolio_service),
):
    """Replace one top-level section and save the whole document."""
    current = await _current_content(service, user.id)
    try:
        updated = apply_section(current, section, value)
    except EditorError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    if isinstance(value, list):
        base = current if current is not None else default_portfolio_content()
        allowed, message = check_list_change(section, count_items(base, section), len(value), user.is_pro)
        if not allowed:
            await _deny(user, service, section, message)

    return await _save(service, user, updated, section=section)


@router.post("/admin/{section}/items", status_code=status.HTTP_201_CREATED)
async def add_portfolio_item(
    section: str,
    body: AddItemRequest,
    user: CurrentUser = Depends(get_current_user),
    service: PortfolioService = Depends(get_portfolio_service),
):
    _list_section(section)
    current = await _current_content(service, user.id)
    if current is None:
        current = default_portfolio_content()

    if is_gated_section(section) and not can_add_item(count_items(current, section), user.is_pro):
        await _deny(user, service, section, UPGRADE_MESSAGE.format(limit=FREE_ITEM_LIMIT, section=section))

    try:
        updated = apply_list_operation(current, section, "add", item=body.item)
    except EditorError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return await _save(service, user, updated, section=section)


@router.delete("/admin/{section}/items/{item_id}")
async def remove_portfolio_item(
    section: str,
    item_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: PortfolioService = Depends(get_portfolio_service),
):
    _list_section(section)
    if is_gated_section(section) and not can_remove_item(user.is_pro):
        await _deny(user, service, section, f"Upgrade to Pro to remove {section}.")

    current = await _current_content(service, user.id)
    try:
        updated = apply_list_operation(current, section, "remove", item_id=item_id)
    except EditorError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return await _save(service, user, updated, section=section)


@router.patch("/admin/{section}/items/{item_id}")
async def update_portfolio_item(
    section: str,
    item_id: str,
    body: UpdateItemRequest,
    user: CurrentUser = Depends(get_current_user),
    service: PortfolioService = Depends(get_portfolio_service),
):
    _list_section(section)
    current = await _current_content(service, user.id)
    try:
        updated = apply_list_operation(current, section, "update", item_id=item_id, field=body.field, value=body.value)
    except EditorError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return await _save(service, user, updated, section=section)


@router.post("/admin/{section}/reorder")
async def reorder_portfolio_items(
    section: str,
    body: ReorderRequest,
    user: CurrentUser = Depends(get_current_user),
    service: PortfolioService = Depends(get_portfolio_service),
):
    _list_section(section)
    current = await _current_content(service, user.id)
    try:
        updated = apply_list_operation(current, section, "move", active_id=body.active_id, over_id=body.over_id)
    except EditorError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return await _save(service, user, updated, section=section)


@router.post("/admin/organize-experience")
async def organize_portfolio_experience(
    user: CurrentUser = Depends(get_current_user),
    service: PortfolioService = Depends(get_portfolio_service),
    llm: LlmClient = Depends(get_llm),
):
    """Ask the AI to group experiences into sections and save the result."""
    current = await _current_content(service, user.id)
    if not current or not current.get("experiences"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No experiences to organize")

    grouping = await organize_experience(llm, current["experiences"])
    if grouping is None:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="AI generation failed")

    updated = apply_experience_grouping(current, grouping)
    return await _save(service, user, updated, section="experienceSections")


@router.patch("/admin/publish")
async def set_portfolio_published(
    body: PublishRequest,
    user: CurrentUser = Depends(get_current_user),
    service: PortfolioService = Depends(get_portfolio_service),
):
    try:
        record = await service.set_published(user.id, body.is_published)
    except PortfolioNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Portfolio not found")
    return {"success": True, "portfolio": _record_response(record)}


@router.get("/admin/history")
async def get_portfolio_history(
    limit: int = 20,
    user: CurrentUser = Depends(get_current_user),
    service: PortfolioService = Depends(get_portfolio_service),
):
    """Recent saves and publish changes for the caller's portfolio."""
    record = await service.get_record(user.id)
    if record is None:
        return {"entries": []}
    entries = await get_audit_logs_for_resource(
        "portfolio", record["portfolio_id"], limit=min(max(limit, 1), 100), db=service.db
    )
    return {"entries": entries}


# ============================================================================
# Rendering
# ============================================================================

@router.get("")
async def get_own_portfolio(
    user: CurrentUser = Depends(get_current_user),
    service: PortfolioService = Depends(get_portfolio_service),
):
    """Content to render for the caller, or null when they have none."""
    return await service.resolve_public_content(user.id)
