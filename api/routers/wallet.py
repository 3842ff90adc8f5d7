"""Wallet Router - connection state for the caller's wallet session."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_session, unwrap
from taskverse.errors import NotFound
from taskverse.persistence import update_user_wallet
from taskverse.services import UserSession

logger = logging.getLogger(__name__)

router = APIRouter()


def _remember_address(session: UserSession) -> None:
    """Store the connected address on the user's account, if registered."""
    address = session.chain.state.address
    if not session.user or not address:
        return
    try:
        update_user_wallet(session.user, address)
    except NotFound:
        logger.info("No registered account for %s; wallet address not stored", session.user)


@router.get("")
def wallet_state(session: UserSession = Depends(get_session)) -> dict:
    return session.chain.state.to_api_dict()


@router.post("/connect")
async def connect_wallet(session: UserSession = Depends(get_session)) -> dict:
    state = unwrap(await session.chain.connect_wallet())
    _remember_address(session)
    return state.to_api_dict()


@router.post("/disconnect")
def disconnect_wallet(session: UserSession = Depends(get_session)) -> dict:
    return unwrap(session.chain.disconnect_wallet()).to_api_dict()


@router.post("/switch-network")
async def switch_network(session: UserSession = Depends(get_session)) -> dict:
    return unwrap(await session.chain.switch_network()).to_api_dict()
