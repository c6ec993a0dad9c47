"""Encrypted API key storage through backend RPCs."""
import logging
from typing import Optional

from kiosk.services.backend.base import Backend

logger = logging.getLogger(__name__)


class SecretStore:
    """Store, fetch and rotate per-restaurant service keys.

    Keys are encrypted server-side; plaintext values only pass through
    this class and are never logged.
    """

    def __init__(self, backend: Backend):
        self.backend = backend

    @staticmethod
    def _args(restaurant_id: str, service_name: str, key_name: str) -> dict:
        return {
            "p_restaurant_id": restaurant_id,
            "p_service_name": service_name,
            "p_key_name": key_name,
        }

    async def store_key(self, restaurant_id: str, service_name: str, value: str, key_name: str = "primary") -> None:
        args = self._args(restaurant_id, service_name, key_name)
        args["p_key_value"] = value
        await self.backend.rpc("store_encrypted_api_key", args)
        logger.info(f"[SECRETS] Stored {service_name}/{key_name} key for restaurant {restaurant_id}")

    async def get_key(self, restaurant_id: str, service_name: str, key_name: str = "primary") -> Optional[str]:
        value = await self.backend.rpc("get_encrypted_api_key", self._args(restaurant_id, service_name, key_name))
        if not value:
            logger.warning(f"[SECRETS] No {service_name}/{key_name} key for restaurant {restaurant_id}")
            return None
        return str(value)

    async def rotate_key(
        self, restaurant_id: str, service_name: str, new_value: str, key_name: str = "primary"
    ) -> None:
        args = self._args(restaurant_id, service_name, key_name)
        args["p_new_key_value"] = new_value
        await self.backend.rpc("rotate_encrypted_api_key", args)
        logger.info(f"[SECRETS] Rotated {service_name}/{key_name} key for restaurant {restaurant_id}")
