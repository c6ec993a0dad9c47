"""Print transports: PrintNode cloud API, QZ Tray bridge and browser print."""
import asyncio
import base64
import json
import logging
import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx
import websockets
from websockets.exceptions import WebSocketException

from kiosk.core.config import settings
from kiosk.core.errors import PrintTransportError

logger = logging.getLogger(__name__)


def encode_payload(payload: Union[str, bytes]) -> str:
    """Base64 of the raw job, as raw print APIs expect. Text is UTF-8 encoded first."""
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return base64.b64encode(payload).decode("ascii")


class PrintTransport(ABC):
    """Sink for rendered receipts."""

    #: receipt format this transport consumes: escpos, plain or html
    format: str = "escpos"
    name: str = "transport"

    @abstractmethod
    async def send(self, payload: Union[str, bytes], printer_id: str, title: str) -> Optional[str]:
        """Deliver one job and return the job id when the target reports one.

        Raises ``PrintTransportError`` on failure.
        """
        pass


class PrintNodeTransport(PrintTransport):
    """Raw jobs posted to the PrintNode HTTP API."""

    format = "escpos"
    name = "printnode"

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or settings.printnode_api_url).rstrip("/")
        self.client = client
        self.timeout = timeout or settings.print_timeout_seconds

    def _auth_header(self) -> str:
        token = base64.b64encode(f"{self.api_key}:".encode("utf-8")).decode("ascii")
        return f"Basic {token}"

    async def send(self, payload: Union[str, bytes], printer_id: str, title: str) -> Optional[str]:
        job = {
            "printer": int(printer_id) if str(printer_id).isdigit() else printer_id,
            "title": title,
            "contentType": "raw_base64",
            "content": encode_payload(payload),
            "source": "Restaurant Kiosk",
        }
        headers = {"Authorization": self._auth_header(), "Content-Type": "application/json"}
        logger.info(f"[PRINT] PrintNode job '{title}' -> printer {printer_id}")

        try:
            if self.client is not None:
                response = await self.client.post(f"{self.base_url}/printjobs", json=job, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(f"{self.base_url}/printjobs", json=job, headers=headers)
        except httpx.HTTPError as e:
            raise PrintTransportError(printer_id, f"PrintNode request failed: {type(e).__name__}: {str(e)}")

        if response.is_error:
            message = f"PrintNode API error ({response.status_code})"
            try:
                data = response.json()
                if isinstance(data, dict):
                    message = data.get("message") or data.get("error") or message
            except ValueError:
                message = f"{message}: {response.text}"
            raise PrintTransportError(printer_id, message, details={"status": response.status_code})

        try:
            data = response.json()
        except ValueError:
            return None
        # PrintNode answers with the bare job id
        if isinstance(data, dict):
            return str(data.get("id", "unknown"))
        return str(data)


Signer = Callable[[str], Awaitable[str]]


class QZTrayTransport(PrintTransport):
    """Raw ESC/POS jobs through the local QZ Tray websocket bridge.

    The bridge expects the site certificate first, then every call signed
    with the matching private key. ``signer`` receives the exact string to
    sign and returns the base64 signature.
    """

    format = "escpos"
    name = "qz-tray"

    def __init__(
        self,
        certificate: str,
        signer: Signer,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        connect=None,
    ):
        self.certificate = certificate
        self.signer = signer
        self.url = url or settings.qz_tray_url
        self.timeout = timeout or settings.print_timeout_seconds
        self._connect = connect or websockets.connect

    async def _call(self, ws, call: str, params: Dict[str, Any]) -> Any:
        message = {
            "call": call,
            "params": params,
            "timestamp": int(time.time() * 1000),
            "uid": uuid.uuid4().hex[:8],
        }
        to_sign = json.dumps({k: message[k] for k in ("call", "params", "timestamp")}, sort_keys=True)
        message["signature"] = await self.signer(to_sign)
        await ws.send(json.dumps(message))

        try:
            reply = await asyncio.wait_for(self._reply(ws, message["uid"]), self.timeout)
        except asyncio.TimeoutError:
            raise RuntimeError(f"no reply to {call} within {self.timeout}s")
        if reply.get("error"):
            raise RuntimeError(reply["error"])
        return reply.get("result")

    @staticmethod
    async def _reply(ws, uid: str) -> Dict[str, Any]:
        while True:
            reply = json.loads(await ws.recv())
            if reply.get("uid") == uid:
                return reply

    async def send(self, payload: Union[str, bytes], printer_id: str, title: str) -> Optional[str]:
        logger.info(f"[PRINT] QZ Tray job '{title}' -> printer {printer_id}")
        try:
            async with self._connect(self.url, open_timeout=self.timeout) as ws:
                await ws.send(json.dumps({"certificate": self.certificate, "call": "websocket.start"}))
                await self._call(
                    ws,
                    "print",
                    {
                        "printer": {"name": printer_id},
                        "options": {"jobName": title, "encoding": "UTF-8"},
                        "data": [
                            {"type": "raw", "format": "command", "flavor": "base64", "data": encode_payload(payload)}
                        ],
                    },
                )
        except (OSError, RuntimeError, ValueError, WebSocketException) as e:
            raise PrintTransportError(printer_id, f"QZ Tray print failed: {type(e).__name__}: {str(e)}")
        return None


Publisher = Callable[[str, str, str], Awaitable[None]]


class BrowserPrintOutbox:
    """Collects browser print documents to hand back in the HTTP response."""

    def __init__(self):
        self.jobs: List[Dict[str, str]] = []

    async def publish(self, payload: str, printer_id: str, title: str) -> None:
        self.jobs.append({"printer_id": printer_id, "title": title, "html": payload})


class BrowserPrintTransport(PrintTransport):
    """Hands the HTML print document to the front-end, which prints it in a hidden frame."""

    format = "html"
    name = "browser"

    def __init__(self, publisher: Publisher):
        self.publisher = publisher

    async def send(self, payload: Union[str, bytes], printer_id: str, title: str) -> Optional[str]:
        logger.info(f"[PRINT] Browser print '{title}'")
        try:
            await self.publisher(payload, printer_id, title)
        except (OSError, RuntimeError, ValueError) as e:
            raise PrintTransportError(printer_id, f"Browser print failed: {type(e).__name__}: {str(e)}")
        return None
