"""Automatic reconnection after transient network failures."""

import asyncio
from pathlib import Path
from typing import Optional, Set, Union

from .logging_utility import logger
from .status_board import AUTO_RETRY_DETAIL, StatusBoard
from .vpn.models import StatusEvent, VPNStatus
from .vpn.supervisor import OpenVPNSupervisor

SUPERSEDING_STATES = (VPNStatus.CONNECTED, VPNStatus.CONNECTING, VPNStatus.AUTHENTICATING)


class AutoRetryPolicy:
    """
    Schedules one reconnect after a "Cannot reach server" or
    "Connection refused" error.

    The retry waits `delay` seconds, shows the auto-retry notice, waits
    `settle_delay` more seconds and then calls `connect()`. It is cancelled
    as soon as the board shows the VPN connecting or connected.
    """

    def __init__(
            self,
            supervisor: OpenVPNSupervisor,
            board: StatusBoard,
            config_path: Union[str, Path, None] = None,
            delay: float = 3.0,
            settle_delay: float = 1.0,
    ):
        self.supervisor = supervisor
        self.board = board
        self.config_path = config_path
        self.delay = delay
        self.settle_delay = settle_delay
        self._pending: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._unsubscribe = supervisor.subscribe(self.on_event)

    @classmethod
    def from_settings(cls, supervisor: OpenVPNSupervisor, board: StatusBoard, settings) -> "AutoRetryPolicy":
        return cls(
            supervisor,
            board,
            config_path=settings.config_path,
            delay=settings.retry_delay,
            settle_delay=settings.retry_settle_delay,
        )

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def on_event(self, event: StatusEvent) -> None:
        if event.status in SUPERSEDING_STATES:
            self.cancel()
            return

        if event.status is not VPNStatus.ERROR or event.kind is None or not event.kind.is_transient:
            return

        if self.pending:
            logger.debug(f"Retry already scheduled, ignoring '{event.label}'")
            return

        logger.info(f"Scheduling auto-retry in {self.delay}s after '{event.label}'")
        self._pending = asyncio.create_task(self._retry())
        self._tasks.add(self._pending)
        self._pending.add_done_callback(self._tasks.discard)

    def cancel(self) -> None:
        if self.pending:
            logger.info("Auto-retry cancelled")
            self._pending.cancel()
        self._pending = None

    def close(self) -> None:
        self.cancel()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _superseded(self) -> bool:
        return self.board.status in SUPERSEDING_STATES

    async def _retry(self) -> None:
        task = asyncio.current_task()
        try:
            await asyncio.sleep(self.delay)
            if self._superseded():
                return

            logger.info("Auto-retrying connection...")
            self.board.set_detail(AUTO_RETRY_DETAIL)

            await asyncio.sleep(self.settle_delay)
            if self._superseded():
                return

            # connect() emits Connecting, which must not cancel this task
            self._pending = None
            await self.supervisor.connect(self.config_path)
        finally:
            if self._pending is task:
                self._pending = None
