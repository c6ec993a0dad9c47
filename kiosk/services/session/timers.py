"""Cancellable timers and the kiosk inactivity monitor."""
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from kiosk.core.config import settings

logger = logging.getLogger(__name__)

Callback = Callable[[], Union[None, Awaitable[Any]]]


class CancellableTimer:
    """Runs ``callback`` once after ``delay`` seconds unless cancelled first."""

    def __init__(self, delay: float, callback: Callback, name: str = "timer"):
        self.delay = delay
        self.callback = callback
        self.name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        result = self.callback()
        if inspect.isawaitable(result):
            await result

    def start(self) -> None:
        """Start the countdown, replacing any running one."""
        self.cancel()
        self._task = asyncio.create_task(self._run(), name=self.name)

    def restart(self) -> None:
        self.start()

    def cancel(self) -> None:
        """Stop the countdown; safe to call any number of times."""
        if self._task is not None and not self._task.done():
            # Never cancel the task from inside its own callback
            if self._task is not asyncio.current_task():
                self._task.cancel()
        self._task = None


class InactivityMonitor:
    """Kiosk idle handling.

    After ``timeout`` seconds without activity the dialog is shown. If the
    customer does not answer within ``dialog_seconds`` the session is reset.
    Every exit path cancels the pending timer.
    """

    def __init__(
        self,
        on_show_dialog: Callback,
        on_reset: Callback,
        timeout: Optional[float] = None,
        dialog_seconds: Optional[float] = None,
    ):
        self.on_show_dialog = on_show_dialog
        self.on_reset = on_reset
        self.dialog_visible = False
        self._idle = CancellableTimer(
            settings.inactivity_timeout_seconds if timeout is None else timeout,
            self._show_dialog,
            name="inactivity",
        )
        self._dialog = CancellableTimer(
            settings.inactivity_dialog_seconds if dialog_seconds is None else dialog_seconds,
            self._expire,
            name="inactivity-dialog",
        )

    @property
    def active(self) -> bool:
        return self._idle.active or self._dialog.active

    def start(self) -> None:
        self.dialog_visible = False
        self._dialog.cancel()
        self._idle.start()

    def record_activity(self) -> None:
        """Any touch restarts the idle countdown while the dialog is hidden."""
        if not self.dialog_visible:
            self._idle.restart()

    async def _show_dialog(self) -> None:
        logger.info("[SESSION] Inactivity detected, showing dialog")
        self.dialog_visible = True
        self._dialog.start()
        result = self.on_show_dialog()
        if inspect.isawaitable(result):
            await result

    async def _expire(self) -> None:
        logger.info("[SESSION] No answer to inactivity dialog, resetting session")
        self.dialog_visible = False
        result = self.on_reset()
        if inspect.isawaitable(result):
            await result

    def continue_session(self) -> None:
        """Customer confirmed they are still there."""
        self._dialog.cancel()
        self.dialog_visible = False
        self._idle.start()

    def cancel(self) -> None:
        """Stop monitoring; used on checkout, dialog dismissal and shutdown."""
        self._dialog.cancel()
        self._idle.cancel()
        self.dialog_visible = False
