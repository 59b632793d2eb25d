"""Supervision of the OpenVPN client process."""

import asyncio
import atexit
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Set, Union

import psutil

from .classifier import StatusClassifier
from .command_factory import VPNCommandFactory
from .commands import CommandError
from .exceptions import ExecutableNotFoundError, SpawnError, TerminationError
from .models import ErrorKind, OutputSource, StatusEvent, VPNStatus
from .utils import StreamDecoder, config_exists, open_process, terminate_elevated, terminate_process
from ..logging_utility import logger

StatusCallback = Callable[[StatusEvent], None]

EXIT_POLL_INTERVAL = 0.1
DRAIN_TIMEOUT = 1.0


@dataclass(eq=False)
class _Generation:
    """One spawned VPN client process and the callbacks tied to it"""
    number: int
    config_path: Path
    process: Optional[asyncio.subprocess.Process] = None
    handle: Optional[psutil.Process] = None
    tasks: List[asyncio.Task] = field(default_factory=list)


class OpenVPNSupervisor:
    """
    Owns at most one OpenVPN client process and reports its state.

    All methods must be called from the event loop that runs the supervisor.
    Output and exit notifications are delivered on that same loop, so the
    ownership of the process is never touched from two places at once.
    Callbacks from a process that has been replaced or stopped are dropped.
    """

    def __init__(
            self,
            config_path: Union[str, Path, None] = None,
            binary: str = "openvpn",
            use_sudo: bool = False,
            read_size: int = 4096,
            drain_timeout: float = DRAIN_TIMEOUT,
            classifier: Optional[StatusClassifier] = None,
    ):
        self.config_path = Path(config_path) if config_path else None
        self.binary = binary
        self.use_sudo = use_sudo
        self.read_size = read_size
        self.drain_timeout = drain_timeout
        self.classifier = classifier or StatusClassifier()
        self._current: Optional[_Generation] = None
        self._generation = 0
        self._last_event = StatusEvent.disconnected()
        self._subscribers: List[StatusCallback] = []
        self._tasks: Set[asyncio.Task] = set()
        self._initialized = False

    @classmethod
    def from_settings(cls, settings) -> "OpenVPNSupervisor":
        return cls(
            config_path=settings.config_path,
            binary=settings.binary,
            use_sudo=settings.use_sudo,
            read_size=settings.read_size,
        )

    @property
    def is_running(self) -> bool:
        """True while a process is owned, including one still being spawned"""
        return self._current is not None

    @property
    def pid(self) -> Optional[int]:
        if self._current is None or self._current.process is None:
            return None
        return self._current.process.pid

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def last_event(self) -> StatusEvent:
        return self._last_event

    def current_status(self) -> VPNStatus:
        """Most recent connection state, as reported to subscribers."""
        return self._last_event.status

    def subscribe(self, callback: StatusCallback) -> Callable[[], None]:
        """
        Register a status listener.

        Args:
            callback: Called with every StatusEvent, in order

        Returns:
            Callable that removes the listener
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def init(self) -> None:
        """Start the supervisor lifecycle and guard against interpreter exit."""
        if self._initialized:
            return
        atexit.register(self._terminate_at_exit)
        self._initialized = True
        logger.info("VPN supervisor initialized")

    def shutdown(self) -> None:
        """Stop any running VPN process. Safe to call more than once."""
        if self._current is not None:
            logger.info("Shutting down, stopping VPN process")
            self._stop_current()
            self._current = None

        for task in list(self._tasks):
            task.cancel()

        if self._initialized:
            atexit.unregister(self._terminate_at_exit)
            self._initialized = False
        logger.info("VPN supervisor shut down")

    async def connect(self, config_path: Union[str, Path, None] = None) -> None:
        """
        Start the VPN client, or stop it if one is already owned.

        Returns as soon as the process is spawned; progress is reported
        through status events.

        Args:
            config_path: OpenVPN config file, defaults to the configured one
        """
        logger.info("VPN connect request received")

        if self._current is not None:
            logger.info("Disconnecting VPN...")
            self._stop_current()
            return

        path = Path(config_path) if config_path else self.config_path
        if path is None or not config_exists(path):
            logger.error(f"OpenVPN config file not found: {path}")
            self._emit(StatusEvent.error("Config file not found", ErrorKind.CONFIG_MISSING))
            return

        self._generation += 1
        generation = _Generation(number=self._generation, config_path=path)
        self._current = generation

        logger.info("Starting VPN connection...")
        self._emit(StatusEvent.connecting(generation.number))

        try:
            process = await self._spawn(path)
        except ExecutableNotFoundError as e:
            logger.error(f"Failed to start VPN process: {str(e)}")
            self._spawn_failed(generation, "OpenVPN not installed", ErrorKind.NOT_INSTALLED)
            return
        except SpawnError as e:
            logger.error(f"Failed to start VPN process: {str(e)}")
            self._spawn_failed(generation, str(e), ErrorKind.SPAWN_FAILURE)
            return

        generation.process = process
        generation.handle = open_process(process.pid)
        self._watch(generation)

        if self._current is not generation:
            logger.info(f"Connection {generation.number} was cancelled while starting, stopping PID {process.pid}")
            try:
                self._terminate(generation)
            except TerminationError as e:
                logger.error(f"Error stopping cancelled VPN process: {str(e)}")
            return

        logger.info(f"OpenVPN started with PID: {process.pid}")

    def disconnect(self) -> None:
        """Stop the owned VPN process. Does nothing when idle."""
        if self._current is None:
            logger.debug("Disconnect requested but no VPN process is running")
            return
        logger.info("Disconnecting VPN...")
        self._stop_current()

    async def _spawn(self, config_path: Path) -> asyncio.subprocess.Process:
        try:
            cmd = VPNCommandFactory.connect(config_path, binary=self.binary, use_sudo=self.use_sudo)
        except CommandError as e:
            raise SpawnError(str(e)) from e

        logger.info(f"Running: {' '.join(cmd)}")
        try:
            return await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ExecutableNotFoundError(f"{cmd[0]} not found") from e
        except (OSError, ValueError) as e:
            raise SpawnError(str(e)) from e

    def _spawn_failed(self, generation: _Generation, message: str, kind: ErrorKind) -> None:
        if self._current is not generation:
            logger.debug(f"Dropping spawn failure of superseded connection {generation.number}")
            return
        self._current = None
        self._emit(StatusEvent.error(message, kind, generation.number))

    def _stop_current(self) -> None:
        generation = self._current

        if generation.process is not None:
            try:
                self._terminate(generation)
            except TerminationError as e:
                # Ownership is kept so a later disconnect can try again
                logger.error(f"Error stopping VPN process: {str(e)}")
                self._emit(StatusEvent.error(str(e), ErrorKind.SIGNAL_FAILURE, generation.number))
                return

        self._current = None
        self._emit(StatusEvent.disconnected(generation.number))

    def _terminate(self, generation: _Generation) -> bool:
        """Signal the process of a generation through its own handle."""
        process = generation.process
        if process.returncode is not None or generation.handle is None:
            logger.info(f"VPN process {process.pid} already exited")
            return False
        if self.use_sudo:
            return terminate_elevated(generation.handle)
        return terminate_process(generation.handle)

    def _watch(self, generation: _Generation) -> None:
        task = asyncio.create_task(self._monitor(generation))
        generation.tasks.append(task)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _monitor(self, generation: _Generation) -> None:
        process = generation.process
        pumps = asyncio.gather(
            self._pump(generation, process.stdout, OutputSource.STDOUT),
            self._pump(generation, process.stderr, OutputSource.STDERR),
        )
        try:
            # process.wait() also waits for the pipes, which a child of the
            # client may keep open after the client itself has exited
            while process.returncode is None:
                await asyncio.sleep(EXIT_POLL_INTERVAL)
            code = process.returncode

            try:
                await asyncio.wait_for(asyncio.shield(pumps), timeout=self.drain_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Output of VPN process {process.pid} still open after exit, no longer reading it")
            except Exception as e:
                logger.error(f"Error reading OpenVPN output: {str(e)}")
        finally:
            if not pumps.done():
                pumps.cancel()

        self._on_exit(generation, code)

    async def _pump(self, generation: _Generation, reader: asyncio.StreamReader, source: OutputSource) -> None:
        decoder = StreamDecoder()
        while True:
            data = await reader.read(self.read_size)
            if not data:
                break
            self._on_output(generation, source, decoder.decode(data))
        self._on_output(generation, source, decoder.flush())

    def _on_output(self, generation: _Generation, source: OutputSource, chunk: str) -> None:
        if not chunk:
            return
        if generation is not self._current:
            logger.debug(f"Dropping {source.value} of superseded connection {generation.number}")
            return

        if source is OutputSource.STDOUT:
            logger.info(f"OpenVPN stdout: {chunk}")
        else:
            logger.error(f"OpenVPN stderr: {chunk}")

        event = self.classifier.feed(source, chunk)
        if event is not None:
            self._emit(event.with_generation(generation.number))

    def _on_exit(self, generation: _Generation, code: int) -> None:
        logger.info(f"VPN process exited with code {code}")
        if generation is not self._current:
            logger.debug(f"Ignoring exit of superseded connection {generation.number}")
            return

        self._current = None
        if code == 0:
            self._emit(StatusEvent.disconnected(generation.number))
        else:
            self._emit(StatusEvent.error(f"Process exited with code {code}", ErrorKind.ABNORMAL_EXIT,
                                         generation.number))

    def _emit(self, event: StatusEvent) -> None:
        self._last_event = event
        if event.status is VPNStatus.CONNECTED:
            logger.info("VPN Connected Successfully")
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Status listener failed on '{event.label}': {str(e)}")

    def _terminate_at_exit(self) -> None:
        if self._current is None or self._current.process is None:
            return
        try:
            self._terminate(self._current)
        except TerminationError as e:
            logger.error(f"Error stopping VPN process at exit: {str(e)}")
