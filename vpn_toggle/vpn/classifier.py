"""Maps VPN client output to connection status events.

Matching is a case-sensitive substring search over each chunk exactly as the
pipe delivered it. Chunks are not reassembled into lines, so a marker split
across two reads is not detected.
"""

from typing import Optional

from .models import ErrorKind, OutputSource, StatusEvent

MAX_ERROR_LENGTH = 100

CONNECTED_MARKERS = ("Initialization Sequence Completed", "CONNECTED,SUCCESS")
AUTHENTICATING_MARKER = "AUTH: Received control message"

# Checked in order, first match wins
STDERR_RULES = (
    ("AUTH_FAILED", "Authentication failed", ErrorKind.AUTH_FAILURE),
    ("RESOLVE: Cannot resolve host", "Cannot reach server", ErrorKind.HOST_UNREACHABLE),
    ("Connection refused", "Connection refused", ErrorKind.CONNECTION_REFUSED),
)


class StatusClassifier:
    """Classifies stdout and stderr chunks of the VPN client"""

    def classify_stdout(self, chunk: str) -> Optional[StatusEvent]:
        if any(marker in chunk for marker in CONNECTED_MARKERS):
            return StatusEvent.connected()
        if AUTHENTICATING_MARKER in chunk:
            return StatusEvent.authenticating()
        return None

    def classify_stderr(self, chunk: str) -> StatusEvent:
        for pattern, message, kind in STDERR_RULES:
            if pattern in chunk:
                return StatusEvent.error(message, kind)
        return StatusEvent.error(chunk[:MAX_ERROR_LENGTH], ErrorKind.UNCLASSIFIED_STDERR)

    def feed(self, source: OutputSource, chunk: str) -> Optional[StatusEvent]:
        """Classify a chunk from either stream; empty chunks produce nothing."""
        if not chunk:
            return None
        if source is OutputSource.STDOUT:
            return self.classify_stdout(chunk)
        return self.classify_stderr(chunk)
