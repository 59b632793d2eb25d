"""Data models for VPN management."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class VPNStatus(Enum):
    """VPN connection status"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    CONNECTED = "connected"
    ERROR = "error"

    @property
    def in_progress(self) -> bool:
        return self in (VPNStatus.CONNECTING, VPNStatus.AUTHENTICATING)


class ErrorKind(Enum):
    """Why a status event is an error"""
    CONFIG_MISSING = "config_missing"
    NOT_INSTALLED = "not_installed"
    SPAWN_FAILURE = "spawn_failure"
    SIGNAL_FAILURE = "signal_failure"
    AUTH_FAILURE = "auth_failure"
    HOST_UNREACHABLE = "host_unreachable"
    CONNECTION_REFUSED = "connection_refused"
    UNCLASSIFIED_STDERR = "unclassified_stderr"
    ABNORMAL_EXIT = "abnormal_exit"

    @property
    def is_transient(self) -> bool:
        """Network-shaped failures that are worth retrying automatically"""
        return self in (ErrorKind.HOST_UNREACHABLE, ErrorKind.CONNECTION_REFUSED)


class OutputSource(Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


_LABELS = {
    VPNStatus.DISCONNECTED: "Disconnected",
    VPNStatus.CONNECTING: "Connecting...",
    VPNStatus.AUTHENTICATING: "Authenticating...",
    VPNStatus.CONNECTED: "Connected",
}


@dataclass(frozen=True)
class StatusEvent:
    """A single state change reported by the supervisor"""
    status: VPNStatus
    message: str = ""
    kind: Optional[ErrorKind] = None
    generation: int = 0
    timestamp: float = field(default_factory=time.time, compare=False)

    @classmethod
    def connecting(cls, generation: int = 0) -> "StatusEvent":
        return cls(VPNStatus.CONNECTING, generation=generation)

    @classmethod
    def authenticating(cls, generation: int = 0) -> "StatusEvent":
        return cls(VPNStatus.AUTHENTICATING, generation=generation)

    @classmethod
    def connected(cls, generation: int = 0) -> "StatusEvent":
        return cls(VPNStatus.CONNECTED, generation=generation)

    @classmethod
    def disconnected(cls, generation: int = 0) -> "StatusEvent":
        return cls(VPNStatus.DISCONNECTED, generation=generation)

    @classmethod
    def error(cls, message: str, kind: ErrorKind, generation: int = 0) -> "StatusEvent":
        return cls(VPNStatus.ERROR, message=message, kind=kind, generation=generation)

    @property
    def label(self) -> str:
        """Human-readable status line, e.g. 'Error: Connection refused'"""
        if self.status is VPNStatus.ERROR:
            return f"Error: {self.message}"
        return _LABELS[self.status]

    def with_generation(self, generation: int) -> "StatusEvent":
        return StatusEvent(self.status, self.message, self.kind, generation, self.timestamp)

    def as_dict(self) -> dict:
        return {
            "status": self.status.value,
            "label": self.label,
            "message": self.message,
            "kind": self.kind.value if self.kind else None,
            "generation": self.generation,
            "timestamp": self.timestamp,
        }
