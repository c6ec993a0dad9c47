"""Kiosk session endpoints: activity, inactivity dialog and item dialog."""
import logging

from fastapi import APIRouter, Depends

from kiosk.core.dependencies import api_rate_limit, get_kiosk_session
from kiosk.services.session.kiosk import KioskSession, SessionStatus

router = APIRouter(dependencies=[Depends(api_rate_limit)])
logger = logging.getLogger(__name__)


@router.get("/api/restaurants/{restaurant_id}/session", response_model=SessionStatus)
async def get_session_status(restaurant_id: str, session: KioskSession = Depends(get_kiosk_session)):
    return session.status()


@router.post("/api/restaurants/{restaurant_id}/session/activity", response_model=SessionStatus)
async def record_activity(restaurant_id: str, session: KioskSession = Depends(get_kiosk_session)):
    """Any touch on the kiosk; starts the idle countdown or pushes it back."""
    session.touch()
    return session.status()


@router.post("/api/restaurants/{restaurant_id}/session/continue", response_model=SessionStatus)
async def continue_session(restaurant_id: str, session: KioskSession = Depends(get_kiosk_session)):
    """Customer answered the inactivity dialog."""
    logger.info(f"[SESSION] Customer still there at restaurant {restaurant_id}")
    session.continue_session()
    return session.status()


@router.post("/api/restaurants/{restaurant_id}/session/end", response_model=SessionStatus)
async def end_session(restaurant_id: str, session: KioskSession = Depends(get_kiosk_session)):
    """Stop idle monitoring, e.g. when the customer dismisses the dialog."""
    session.end()
    return session.status()


@router.delete("/api/restaurants/{restaurant_id}/session/item", response_model=SessionStatus)
async def close_item(restaurant_id: str, session: KioskSession = Depends(get_kiosk_session)):
    """Close the item dialog; a detail still loading is discarded."""
    session.loader.close()
    return session.status()
