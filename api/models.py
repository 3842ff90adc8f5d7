"""Shared Pydantic request models for API routers."""
from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Task Models
# =============================================================================

class TaskCreateRequest(BaseModel):
    """Request body for creating a task."""
    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: Optional[str] = None
    due_date: Optional[str] = Field(None, alias="dueDate")
    priority: Literal["high", "medium", "low"] = "medium"
    status: Literal["pending", "completed"] = "pending"
    category: Optional[str] = None

    def to_fields(self) -> Dict[str, Any]:
        return self.model_dump()


class TaskUpdateRequest(BaseModel):
    """Partial update; omitted fields keep their current values."""
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[str] = Field(None, alias="dueDate")
    priority: Optional[Literal["high", "medium", "low"]] = None
    status: Optional[Literal["pending", "completed"]] = None
    category: Optional[str] = None

    def to_fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class ViewSettingsRequest(BaseModel):
    """Filter and sort applied to the caller's task view."""
    filter: Optional[str] = None
    sort: Optional[str] = None


# =============================================================================
# Auth Models
# =============================================================================

class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str
