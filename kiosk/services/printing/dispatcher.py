"""Fan a receipt out to every target printer."""
import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Union

from pydantic import BaseModel

from kiosk.core.errors import BackendError, PrintTransportError
from kiosk.services.backend.base import Backend
from kiosk.services.printing.transports import (
    BrowserPrintTransport,
    PrintNodeTransport,
    PrintTransport,
)
from kiosk.services.receipt.document import ReceiptDocument
from kiosk.services.receipt.renderers import render
from kiosk.services.security.secrets import SecretStore

logger = logging.getLogger(__name__)

BROWSER_TARGET = "browser"


class PrintConfig(BaseModel):
    restaurant_id: str
    configured_printers: List[str] = []
    browser_printing_enabled: bool = True


class PrintResult(BaseModel):
    printer_id: str
    success: bool
    job_id: Optional[str] = None
    error: Optional[str] = None


class PrintSummary(BaseModel):
    success: bool
    results: List[PrintResult] = []
    summary: Dict[str, int] = {"successful": 0, "failed": 0, "total": 0}


async def load_print_config(backend: Backend, restaurant_id: str) -> PrintConfig:
    """Read the restaurant's print settings, creating the default row if needed."""
    row = await backend.query_one("restaurant_print_config", {"restaurant_id": restaurant_id})
    if row is None:
        logger.info(f"[PRINT] No print config for restaurant {restaurant_id}, creating defaults")
        row = await backend.insert(
            "restaurant_print_config",
            {"restaurant_id": restaurant_id, "configured_printers": [], "browser_printing_enabled": True},
        )
    return PrintConfig(
        restaurant_id=restaurant_id,
        configured_printers=[str(p) for p in row.get("configured_printers") or []],
        browser_printing_enabled=bool(row.get("browser_printing_enabled", True)),
    )


async def save_print_config(backend: Backend, config: PrintConfig) -> PrintConfig:
    """Store the restaurant's printer list and browser printing switch."""
    await load_print_config(backend, config.restaurant_id)
    await backend.update(
        "restaurant_print_config",
        {
            "configured_printers": config.configured_printers,
            "browser_printing_enabled": config.browser_printing_enabled,
        },
        {"restaurant_id": config.restaurant_id},
    )
    logger.info(
        f"[PRINT] Print config of restaurant {config.restaurant_id} updated - "
        f"{len(config.configured_printers)} printers, browser={config.browser_printing_enabled}"
    )
    return await load_print_config(backend, config.restaurant_id)


async def printnode_transport_for(
    secrets: SecretStore, restaurant_id: str, **kwargs
) -> Optional[PrintNodeTransport]:
    """PrintNode transport using the restaurant's stored key.

    None when no key is set or the key cannot be read; the order still
    goes through and the affected printers are reported as failed.
    """
    try:
        api_key = await secrets.get_key(restaurant_id, "printnode")
    except BackendError as e:
        logger.error(f"[PRINT] Could not read PrintNode key for restaurant {restaurant_id}: {e}")
        return None
    if not api_key:
        return None
    return PrintNodeTransport(api_key, **kwargs)


class PrintDispatcher:
    """Sends one receipt to many printers concurrently.

    A failure on one printer never affects the others; every outcome is
    reported in the summary.
    """

    def __init__(
        self,
        backend: Backend,
        transport: Optional[PrintTransport] = None,
        browser: Optional[BrowserPrintTransport] = None,
    ):
        self.backend = backend
        self.transport = transport
        self.browser = browser

    async def _send(
        self, transport: PrintTransport, payload: Union[str, bytes], printer_id: str, title: str
    ) -> PrintResult:
        try:
            job_id = await transport.send(payload, printer_id, title)
        except PrintTransportError as e:
            logger.error(f"[PRINT] Print failed for printer {printer_id}: {e.message}")
            return PrintResult(printer_id=printer_id, success=False, error=e.message)
        except Exception as e:
            logger.error(
                f"[PRINT] Unexpected {transport.name} error for printer {printer_id}: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            return PrintResult(printer_id=printer_id, success=False, error=f"{type(e).__name__}: {str(e)}")
        return PrintResult(printer_id=printer_id, success=True, job_id=job_id)

    async def print_receipt(
        self,
        restaurant_id: str,
        document: ReceiptDocument,
        printer_ids: Optional[Sequence[str]] = None,
    ) -> PrintSummary:
        config = await load_print_config(self.backend, restaurant_id)
        targets = [str(p) for p in printer_ids or []] or config.configured_printers
        title = f"Order #{document.meta.order_number}"

        rendered: Dict[str, Union[str, bytes]] = {}

        def payload_for(fmt: str) -> Union[str, bytes]:
            if fmt not in rendered:
                rendered[fmt] = render(document, fmt)
            return rendered[fmt]

        jobs = []
        if self.transport is not None:
            for printer_id in targets:
                payload = payload_for(self.transport.format)
                jobs.append(self._send(self.transport, payload, printer_id, title))
        elif targets:
            logger.warning(f"[PRINT] {len(targets)} printers configured but no print transport available")
            jobs.extend(self._unavailable(printer_id) for printer_id in targets)

        if self.browser is not None and config.browser_printing_enabled:
            payload = payload_for(self.browser.format)
            jobs.append(self._send(self.browser, payload, BROWSER_TARGET, title))

        if not jobs:
            logger.warning(f"[PRINT] No printers configured for restaurant {restaurant_id}")
            return PrintSummary(success=False)

        results = list(await asyncio.gather(*jobs))
        successful = sum(1 for r in results if r.success)
        logger.info(
            f"[PRINT] Print summary for {title}: {successful} successful, "
            f"{len(results) - successful} failed"
        )
        return PrintSummary(
            success=successful > 0,
            results=results,
            summary={"successful": successful, "failed": len(results) - successful, "total": len(results)},
        )

    @staticmethod
    async def _unavailable(printer_id: str) -> PrintResult:
        return PrintResult(printer_id=printer_id, success=False, error="No print transport configured")
