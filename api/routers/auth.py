"""Auth Router - account registration and password login."""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from api.dependencies import raise_for_error
from api.models import LoginRequest, RegisterRequest
from taskverse.errors import ValidationError
from taskverse.persistence import authenticate, create_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", status_code=201)
def register(request: RegisterRequest) -> dict:
    try:
        user = create_user(request.name, request.email, request.password)
    except ValidationError as exc:
        raise_for_error(exc)
    return {"user": user.to_api_dict()}


@router.post("/login")
def login(request: LoginRequest) -> dict:
    user = authenticate(request.email, request.password)
    if user is None:
        logger.info("Rejected login for %s", request.email.strip().lower())
        raise HTTPException(
            status_code=401,
            detail={"code": "invalid_credentials", "message": "Invalid credentials"},
        )
    return {"user": user.to_api_dict()}
