"""Security audit trail."""
import logging
from typing import Any, Dict, Optional

from kiosk.core.errors import BackendError
from kiosk.services.backend.base import Backend

logger = logging.getLogger(__name__)

SENSITIVE_KEYS = ("password", "token", "secret", "api_key", "apikey", "key_value", "authorization")


def mask_sensitive(details: Dict[str, Any]) -> Dict[str, Any]:
    """Replace values of credential-like keys with a mask, recursively."""
    masked: Dict[str, Any] = {}
    for key, value in details.items():
        if any(marker in key.lower() for marker in SENSITIVE_KEYS):
            masked[key] = "***"
        elif isinstance(value, dict):
            masked[key] = mask_sensitive(value)
        else:
            masked[key] = value
    return masked


class AuditLogger:
    """Writes ``security_audit_log`` rows.

    Auditing must never break the action being audited: backend failures
    are logged and swallowed.
    """

    def __init__(self, backend: Backend):
        self.backend = backend

    async def log_event(
        self,
        event_type: str,
        details: Optional[Dict[str, Any]] = None,
        severity: str = "info",
        restaurant_id: Optional[str] = None,
    ) -> bool:
        row = {
            "event_type": event_type,
            "severity": severity,
            "restaurant_id": restaurant_id,
            "details": mask_sensitive(details or {}),
        }
        try:
            await self.backend.insert("security_audit_log", row)
        except BackendError as e:
            logger.error(f"[AUDIT] Failed to record {event_type}: {e}", exc_info=True)
            return False
        logger.info(f"[AUDIT] {severity.upper()} {event_type} (restaurant {restaurant_id or '-'})")
        return True
