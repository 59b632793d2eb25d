"""Utility functions for VPN management."""

import codecs
import subprocess
from pathlib import Path
from typing import Optional, Tuple, Union

import psutil

from .command_factory import VPNCommandFactory
from .exceptions import TerminationError, VPNError
from ..logging_utility import logger

COMMAND_TIMEOUT = 10


def run_command(cmd: list[str], check: bool = True, timeout: float = COMMAND_TIMEOUT) -> Tuple[str, str]:
    """
    Run a short helper command and return its output.

    Args:
        cmd: Command as list of strings
        check: Whether to raise exception on error
        timeout: Seconds before the command is abandoned

    Returns:
        Tuple of (stdout, stderr)

    Raises:
        VPNError: If the command fails and check is set, or cannot run at all
    """
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=check,
                                stdin=subprocess.DEVNULL, timeout=timeout)
        return result.stdout, result.stderr
    except subprocess.CalledProcessError as e:
        raise VPNError(f"Command failed: {' '.join(cmd)}\n{e.stderr}")
    except subprocess.TimeoutExpired:
        raise VPNError(f"Command timed out: {' '.join(cmd)}")
    except OSError as e:
        raise VPNError(f"Command could not run: {' '.join(cmd)}: {str(e)}")


def config_exists(config_path: Union[str, Path]) -> bool:
    """
    Check that the VPN configuration file is present.

    Only existence is checked; the file format is left to the VPN client.

    Args:
        config_path: Path to the .ovpn file

    Returns:
        bool: True if a file exists at the path
    """
    return Path(config_path).is_file()


def open_process(pid: int) -> Optional[psutil.Process]:
    """Handle on a freshly spawned process, or None if it is already gone."""
    try:
        return psutil.Process(pid)
    except psutil.NoSuchProcess:
        return None


def terminate_process(handle: psutil.Process) -> bool:
    """
    Send the graceful termination signal (SIGTERM) to a process.

    The handle remembers the process creation time, so a pid that has been
    reused by an unrelated process is never signalled. Does not wait for
    the process to exit and never escalates to a kill.

    Args:
        handle: psutil handle taken when the process was spawned

    Returns:
        bool: True if the signal was delivered, False if the process was already gone

    Raises:
        TerminationError: If the signal could not be delivered
    """
    try:
        handle.terminate()
    except psutil.NoSuchProcess:
        logger.info(f"Process {handle.pid} already exited")
        return False
    except psutil.AccessDenied as e:
        raise TerminationError(f"Permission denied stopping process {handle.pid}") from e
    except OSError as e:
        raise TerminationError(f"Failed to stop process {handle.pid}: {str(e)}") from e
    logger.info(f"Sent SIGTERM to process {handle.pid}")
    return True


def terminate_elevated(handle: psutil.Process) -> bool:
    """
    Send SIGTERM through sudo to a VPN client that was started with sudo.

    Args:
        handle: psutil handle of the sudo process

    Returns:
        bool: True if the signal was delivered, False if the process was already gone

    Raises:
        TerminationError: If the kill command fails
    """
    if not handle.is_running():
        logger.info(f"Process {handle.pid} already exited")
        return False
    try:
        run_command(VPNCommandFactory.kill_vpn(handle.pid))
    except VPNError as e:
        raise TerminationError(f"Failed to stop process {handle.pid}: {str(e)}") from e
    logger.info(f"Sent SIGTERM to process {handle.pid} through sudo")
    return True


class StreamDecoder:
    """Incremental UTF-8 decoder for one output stream of the VPN client.

    Only multi-byte characters are carried across reads; text is otherwise
    handed on with the chunk boundaries the pipe delivered.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")

    def decode(self, data: bytes) -> str:
        return self._decoder.decode(data)

    def flush(self) -> str:
        return self._decoder.decode(b"", final=True)
