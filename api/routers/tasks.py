"""Tasks Router - task CRUD, view settings, ledger verification, AI tips.

Handles:
- Task listing with filter/sort (mounted at /tasks)
- Create, update, delete and completion toggling
- On-chain verification through the caller's wallet session
- AI prioritization tip and completion analytics
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_session, raise_for_error, unwrap
from api.models import TaskCreateRequest, TaskUpdateRequest, ViewSettingsRequest
from taskverse.errors import ValidationError
from taskverse.services import UserSession
from taskverse.task_store import build_view
from taskverse.task_store.views import coerce_filter, coerce_sort
from taskverse.tasks import Task, TaskDraft

logger = logging.getLogger(__name__)

router = APIRouter()


def _view_payload(session: UserSession, tasks) -> dict:
    state = session.tasks.state
    return {
        "tasks": [task.to_api_dict() for task in tasks],
        "count": len(tasks),
        "total": len(state.tasks),
        "filter": state.filter.value,
        "sort": state.sort.value,
        "aiMotivationalTip": session.tasks.ai_motivational_tip,
    }


# =============================================================================
# Listing and view settings
# =============================================================================

@router.get("")
def list_tasks(
    filter: Optional[str] = Query(None, description="all, pending or completed"),
    sort: Optional[str] = Query(None, description="dueDate, priority or createdAt"),
    session: UserSession = Depends(get_session),
) -> dict:
    """Return the caller's view. Query overrides apply to this response only."""
    state = session.tasks.state
    if filter is None and sort is None:
        return _view_payload(session, state.view)
    try:
        kind = coerce_filter(filter) if filter is not None else state.filter
        key = coerce_sort(sort) if sort is not None else state.sort
    except ValidationError as exc:
        raise_for_error(exc)
    payload = _view_payload(session, build_view(state.tasks, kind, key))
    payload.update(filter=kind.value, sort=key.value)
    return payload


@router.put("/view")
def update_view(
    request: ViewSettingsRequest,
    session: UserSession = Depends(get_session),
) -> dict:
    """Change the stored filter and/or sort. Nothing changes if either is invalid."""
    try:
        kind = coerce_filter(request.filter) if request.filter is not None else None
        key = coerce_sort(request.sort) if request.sort is not None else None
    except ValidationError as exc:
        raise_for_error(exc)
    if kind is not None:
        unwrap(session.tasks.set_filter(kind))
    if key is not None:
        unwrap(session.tasks.set_sort(key))
    return _view_payload(session, session.tasks.state.view)


# =============================================================================
# AI and analytics
# =============================================================================

@router.post("/prioritize")
async def prioritize_tasks(session: UserSession = Depends(get_session)) -> dict:
    result = unwrap(await session.tasks.get_ai_prioritization())
    return result.to_api_dict()


@router.get("/analytics")
async def task_analytics(session: UserSession = Depends(get_session)) -> dict:
    analytics = unwrap(await session.tasks.fetch_analytics())
    return analytics.to_api_dict()


# =============================================================================
# CRUD
# =============================================================================

@router.post("", status_code=201)
async def create_task(
    request: TaskCreateRequest,
    session: UserSession = Depends(get_session),
) -> dict:
    try:
        draft = TaskDraft.from_dict(request.to_fields())
    except ValidationError as exc:
        raise_for_error(exc)
    task = unwrap(await session.tasks.add_task(draft))
    logger.info("Created task %s for %s", task.id, session.user)
    return {"task": task.to_api_dict()}


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    request: TaskUpdateRequest,
    session: UserSession = Depends(get_session),
) -> dict:
    current = session.tasks.store.get(task_id)
    if current is None:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": "Task not found."})
    try:
        updated = Task.from_dict({**current.to_dict(), **request.to_fields(), "id": task_id})
    except ValidationError as exc:
        raise_for_error(exc)
    task = unwrap(await session.tasks.update_task(updated))
    return {"task": task.to_api_dict()}


@router.delete("/{task_id}")
async def delete_task(task_id: str, session: UserSession = Depends(get_session)) -> dict:
    unwrap(await session.tasks.delete_task(task_id))
    return {"deleted": task_id}


@router.post("/{task_id}/complete")
async def toggle_task_completion(task_id: str, session: UserSession = Depends(get_session)) -> dict:
    task = unwrap(await session.tasks.complete_task(task_id))
    return {"task": task.to_api_dict()}


@router.post("/{task_id}/verify")
async def verify_task(task_id: str, session: UserSession = Depends(get_session)) -> dict:
    """Send the task to the ledger through the caller's connected wallet."""
    receipt = unwrap(await session.tasks.verify_task_on_blockchain(task_id, session.chain))
    task = session.tasks.store.get(task_id)
    return {
        "receipt": receipt.to_api_dict(),
        "task": task.to_api_dict() if task else None,
        "wallet": session.chain.state.to_api_dict(),
    }
