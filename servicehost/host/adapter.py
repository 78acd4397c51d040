"""Gives an arbitrary object a supervised start/stop/dispose lifecycle."""

from __future__ import annotations

import sys
import threading
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable

from loguru import logger

from servicehost.errors import aggregate_messages
from servicehost.host.capabilities import Capabilities, describe, probe
from servicehost.host.version import version_of

if TYPE_CHECKING:
    from servicehost.config.schema import LaunchSpec

FAILURE_EXIT_CODE = 1


class HostState(str, Enum):
    CREATED = "created"
    STARTING = "starting"
    RUNNING = "running"
    STOP_REQUESTED = "stop_requested"
    STOPPED = "stopped"
    DISPOSED = "disposed"


def merge_arguments(configured: Iterable[str], process_args: Iterable[str]) -> list[str]:
    """Configured arguments followed by process arguments, without repeats."""
    return list(dict.fromkeys([*configured, *process_args]))


class HostedService:
    """
    Drives one hosted object through Created -> Starting -> Running ->
    StopRequested -> Stopped -> Disposed.

    The object is created on start. Its start() runs on a dedicated worker
    thread so on_start() returns immediately; stop and dispose run on the
    calling thread. Nothing raised by the hosted object escapes: start
    failures set a failure exit code and trigger a stop, stop/dispose
    failures are logged and teardown continues.
    """

    def __init__(
        self,
        factory: Callable[[], Any],
        name: str = "",
        start: Callable[[Any], None] | None = None,
        stop: Callable[[Any], None] | None = None,
        on_stop_requested: Callable[[], None] | None = None,
        process_args: Iterable[str] | None = None,
    ):
        if factory is None:
            raise ValueError("factory is required")
        self.factory = factory
        self.name = name
        self.on_stop_requested = on_stop_requested
        self._start_override = start
        self._stop_override = stop
        self._process_args = list(process_args) if process_args is not None else None

        self.instance: Any = None
        self.capabilities: Capabilities | None = None
        self.exit_code = 0
        self.start_error: BaseException | None = None
        self.has_started = False
        self.has_stopped = False
        self._binding = False

        self._state = HostState.CREATED
        self._disposed = False
        self._lock = threading.Lock()
        self._started = threading.Event()
        self._stopped = threading.Event()
        self._worker: threading.Thread | None = None

    @classmethod
    def from_spec(
        cls,
        spec: LaunchSpec,
        on_stop_requested: Callable[[], None] | None = None,
    ) -> HostedService:
        return cls(
            spec.factory,
            name=spec.name,
            start=spec.start_override,
            stop=spec.stop_override,
            on_stop_requested=on_stop_requested,
            process_args=spec.process_args,
        )

    @property
    def state(self) -> HostState:
        return self._state

    def _set_state(self, state: HostState, only_from: HostState | None = None) -> None:
        with self._lock:
            if only_from is None or self._state is only_from:
                self._state = state

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    def on_start(self, args: Iterable[str] = ()) -> None:
        """Create the hosted object, hand it its arguments and start it in the background."""
        with self._lock:
            if self.has_started:
                logger.warning(f"Service {self.name} already started")
                return
            self.has_started = True
            self._binding = True
            self._state = HostState.STARTING

        process_args = self._process_args if self._process_args is not None else sys.argv[1:]
        merged = merge_arguments(args, process_args)

        try:
            self.instance = self.factory()
        except Exception as e:
            self._abort_start(e)
            return

        cls = type(self.instance)
        logger.info(f"Service: {self.name} ({cls.__name__}) {version_of(cls)}".rstrip())
        logger.info("Starting...")

        self.capabilities = probe(cls, self._start_override, self._stop_override)
        logger.debug(f"Capabilities: {', '.join(describe(self.instance)) or 'none'}")

        if merged:
            logger.info(f"Service: arguments: {' '.join(merged)}")
            if self.capabilities.with_args is None:
                logger.error("No with_args method to process arguments")
            else:
                try:
                    self.capabilities.with_args(self.instance, merged)
                except Exception as e:
                    self._abort_start(e)
                    return

        with self._lock:
            self._binding = False
            stop_requested = self.has_stopped
            if not stop_requested:
                self._worker = threading.Thread(
                    target=self._run_start,
                    name=f"{self.name or cls.__name__}-start",
                    daemon=True,
                )
                self._worker.start()

        if stop_requested:
            logger.info("Stop requested while starting, start skipped")
            self._started.set()
            self._finish_stop()

    def _run_start(self) -> None:
        try:
            self.capabilities.start(self.instance)
        except Exception as e:
            self._fail(e)
            return
        self._set_state(HostState.RUNNING, only_from=HostState.STARTING)
        logger.info("Started")
        self._started.set()

    def _abort_start(self, error: BaseException) -> None:
        """Fail while the hosted object is still being set up on the calling thread."""
        with self._lock:
            self._binding = False
            deferred_stop = self.has_stopped
        self._fail(error)
        if deferred_stop:
            self._finish_stop()

    def _fail(self, error: BaseException) -> None:
        self.start_error = error
        self.exit_code = FAILURE_EXIT_CODE
        logger.error(f"Service start FAILED: {aggregate_messages(error)}")
        self._started.set()
        self.stop()

    def wait_started(self, timeout: float | None = None) -> bool:
        """Wait until the start function has returned or failed."""
        return self._started.wait(timeout)

    # ------------------------------------------------------------------
    # Stop / dispose
    # ------------------------------------------------------------------

    def stop(self) -> None:
        """
        Run the hosted object's stop once. Later calls do nothing.

        A stop requested while on_start is still creating the object is
        completed by on_start once the object exists.
        """
        with self._lock:
            if self._state is HostState.CREATED:
                logger.debug(f"Stop ignored, service {self.name} was never started")
                return
            if self.has_stopped:
                return
            self.has_stopped = True
            self._state = HostState.STOP_REQUESTED
            if self._binding:
                logger.debug(f"Stop deferred until service {self.name} is created")
                return

        self._finish_stop()

    def _finish_stop(self) -> None:
        if self.instance is not None and self.capabilities is not None:
            try:
                self.capabilities.stop(self.instance)
            except Exception as e:
                logger.error(f"Service stop FAILED: {aggregate_messages(e)}")

        self._set_state(HostState.STOPPED, only_from=HostState.STOP_REQUESTED)
        logger.info("Stopped")

        if self.on_stop_requested is not None:
            try:
                self.on_stop_requested()
            except Exception as e:
                logger.error(f"Stop notification failed: {e}")
        self._stopped.set()

    def wait_stopped(self, timeout: float | None = None) -> bool:
        """Wait until stop has run."""
        return self._stopped.wait(timeout)

    def dispose(self) -> None:
        """Stop if still running, then release the hosted object. Runs once."""
        with self._lock:
            if self._disposed:
                return
            self._disposed = True

        self.stop()
        if self.has_stopped:
            self._stopped.wait()

        if self.instance is not None:
            dispose_fn = self.capabilities.dispose if self.capabilities else None
            if dispose_fn is not None:
                try:
                    dispose_fn(self.instance)
                except Exception as e:
                    logger.error(f"Service dispose FAILED: {aggregate_messages(e)}")

        self._set_state(HostState.DISPOSED)

    def __enter__(self) -> HostedService:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.dispose()
