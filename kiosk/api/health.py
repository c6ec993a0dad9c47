"""Health check endpoint."""
import logging

from fastapi import APIRouter, Depends, Request

from kiosk.core.dependencies import get_backend
from kiosk.core.errors import BackendError
from kiosk.services.backend.base import Backend

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(request: Request, backend: Backend = Depends(get_backend)):
    """Health check endpoint; also checks the backend."""
    logger.debug(
        f"[HEALTH] Health check requested - Client: {request.client.host if request.client else 'unknown'}"
    )
    try:
        await backend.count("restaurants")
    except BackendError as e:
        logger.warning(f"[HEALTH] Backend unavailable: {e}")
        return {"status": "degraded", "backend": "unavailable"}
    return {"status": "healthy", "backend": "ok"}
