"""What the client shows for the current VPN state."""

import asyncio
from collections import deque
from typing import Deque, List, Set

from .logging_utility import logger
from .vpn.models import StatusEvent, VPNStatus

CONNECTED_DETAIL = "VPN connection established. Your IP is now masked."
DISCONNECTED_DETAIL = "Click the button below to connect to VPN"
CONNECTING_DETAIL = "Please wait while establishing VPN connection..."
AUTO_RETRY_DETAIL = "Auto-retrying connection..."


class StatusBoard:
    """
    Display state derived from supervisor events.

    Subscribe `update` to the supervisor. Listeners registered with `listen`
    receive every event on their own queue.
    """

    def __init__(self, history_size: int = 50, queue_size: int = 100):
        self.status = VPNStatus.DISCONNECTED
        self.headline = "Disconnected"
        self.detail = DISCONNECTED_DETAIL
        self.action_label = "Connect VPN"
        self.busy = False
        self.history: Deque[StatusEvent] = deque(maxlen=history_size)
        self._queue_size = queue_size
        self._listeners: Set[asyncio.Queue] = set()

    def update(self, event: StatusEvent) -> None:
        logger.info(f"Received status update: {event.label}")
        self.status = event.status
        self.history.append(event)

        if event.status is VPNStatus.CONNECTED:
            self.headline = "Connected"
            self.detail = CONNECTED_DETAIL
            self.action_label = "Disconnect VPN"
        elif event.status is VPNStatus.DISCONNECTED:
            self.headline = "Disconnected"
            self.detail = DISCONNECTED_DETAIL
            self.action_label = "Connect VPN"
        elif event.status.in_progress:
            self.headline = event.label
            self.detail = CONNECTING_DETAIL
            self.action_label = "Connecting"
        else:
            self.headline = "Error"
            self.detail = event.label
            self.action_label = "Retry Connection"
        self.busy = event.status.in_progress

        for queue in list(self._listeners):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Status listener is not keeping up, dropping event")

    def set_detail(self, detail: str) -> None:
        self.detail = detail

    def listen(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._listeners.add(queue)
        return queue

    def unlisten(self, queue: asyncio.Queue) -> None:
        self._listeners.discard(queue)

    def recent(self, limit: int = 20) -> List[StatusEvent]:
        return list(self.history)[-limit:]

    def snapshot(self) -> dict:
        return {
            "status": self.status.value,
            "headline": self.headline,
            "detail": self.detail,
            "action_label": self.action_label,
            "busy": self.busy,
        }
