"""
Execution Harness

Owns the sandbox runtime process and the run/stop/busy protocol around it.
Callers submit an ExecutionRequest and always get a HarnessOutcome back;
harness failures are never raised.

Lifecycle:
    IDLE ──run()──> RUNNING ──result / error / busy reply──> IDLE
                            ──timer fires──────────────────> IDLE (TIMED_OUT)
                            ──stop()───────────────────────> IDLE (STOPPED)
                            ──initialize()─────────────────> IDLE (STOPPED, new process)
                            ──runtime process exits────────> IDLE (FAILED)

The timeout budget starts once the runtime reports it is ready, so the
time a fresh process spends importing is never charged to a run.

stop() only tells the runtime to drop the pending reply. Code that is
already executing keeps the runtime busy until it returns, and later runs
are answered with BUSY by the runtime itself. initialize() is the only way
to reclaim a stuck runtime: it kills the process and starts a new one.

Usage:
    from orbis.services.learning.execution_harness import get_execution_harness

    harness = get_execution_harness()
    harness.initialize()

    outcome = await harness.run(request)
    if outcome.kind == OutcomeKind.COMPLETED:
        print(outcome.result.passed_count)
"""

import asyncio
import logging
import multiprocessing
import pickle
import threading
from typing import Callable, Optional

from orbis.config import settings
from orbis.enums.learning import HarnessState, RuntimeMessageType
from orbis.models.learning import ExecutionRequest, ExecutionResult, HarnessOutcome
from orbis.services.learning.code_sandbox import runtime_main

logger = logging.getLogger(__name__)

REINITIALIZED_MESSAGE = "Execution runtime reinitialized"
CLOSED_MESSAGE = "Execution runtime closed"


class ExecutionHarness:
    """
    Runs submissions in a child process with a wall-clock budget.

    One run may be in flight at a time. Replies from the runtime carry the
    run_id they answer; replies for any other run, and every message from a
    runtime process that has since been replaced, are ignored.
    """

    def __init__(
        self,
        start_method: Optional[str] = None,
        shutdown_timeout: Optional[float] = None,
        entry_points: Optional[list[str]] = None,
    ):
        """
        Initialize the harness. No process is started until initialize() or
        the first run().

        Args:
            start_method: multiprocessing start method
                (defaults to settings.SANDBOX_START_METHOD)
            shutdown_timeout: Seconds to wait for the runtime to exit
                (defaults to settings.SANDBOX_SHUTDOWN_TIMEOUT_SECONDS)
            entry_points: Entry point names forwarded to the runtime
        """
        self.start_method = start_method or settings.SANDBOX_START_METHOD
        self.shutdown_timeout = (
            shutdown_timeout
            if shutdown_timeout is not None
            else settings.SANDBOX_SHUTDOWN_TIMEOUT_SECONDS
        )
        self.entry_points = list(entry_points or settings.SANDBOX_ENTRY_POINTS)
        self._context = multiprocessing.get_context(self.start_method)

        self._process = None
        self._connection = None
        self._reader: Optional[threading.Thread] = None
        self._ready: Optional[threading.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        # Bumped whenever the runtime process is replaced or closed
        self._generation = 0
        self._run_counter = 0

        self._state = HarnessState.IDLE
        self._active_run_id: Optional[int] = None
        self._pending: Optional[asyncio.Future] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._timeout_seconds: Optional[float] = None

    @property
    def state(self) -> HarnessState:
        return self._state

    @property
    def runtime_alive(self) -> bool:
        return self._process is not None and self._process.is_alive()

    # -----------------------------------------
    # Lifecycle
    # -----------------------------------------

    def initialize(self) -> None:
        """
        Discard any runtime and start a fresh one.

        A run in flight is resolved as STOPPED and its result, if it ever
        arrives, is never delivered. Safe to call repeatedly.
        """
        self._bind_running_loop()
        self._generation += 1

        if self._state == HarnessState.RUNNING:
            self._finish(HarnessOutcome.stopped(REINITIALIZED_MESSAGE))

        self._terminate_runtime()
        self._spawn_runtime()

    def close(self) -> None:
        """Terminate the runtime without starting a new one."""
        self._generation += 1

        if self._state == HarnessState.RUNNING:
            self._finish(HarnessOutcome.stopped(CLOSED_MESSAGE))

        self._terminate_runtime()

    async def __aenter__(self) -> "ExecutionHarness":
        self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _bind_running_loop(self) -> None:
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            # Called outside a loop; run() binds one later
            pass

    def _spawn_runtime(self) -> None:
        parent_conn, child_conn = self._context.Pipe()
        process = self._context.Process(
            target=runtime_main,
            args=(child_conn, self.entry_points),
            name=f"orbis-sandbox-{self._generation}",
            daemon=True,
        )
        ready = threading.Event()
        process.start()
        # Parent only keeps its own end so EOF is seen when the child dies
        child_conn.close()

        self._process = process
        self._connection = parent_conn
        self._ready = ready
        self._reader = threading.Thread(
            target=self._read_messages,
            args=(parent_conn, self._generation, ready),
            name=f"orbis-sandbox-reader-{self._generation}",
            daemon=True,
        )
        self._reader.start()

        logger.info(
            f"Started sandbox runtime (pid={process.pid}, "
            f"generation={self._generation}, method={self.start_method})"
        )

    def _terminate_runtime(self) -> None:
        process, connection, reader = self._process, self._connection, self._reader
        self._process = self._connection = self._reader = self._ready = None

        if process is not None:
            if process.is_alive():
                process.terminate()
                process.join(self.shutdown_timeout)
            if process.is_alive():
                logger.warning(f"Sandbox runtime {process.pid} ignored SIGTERM, killing")
                process.kill()
                process.join(self.shutdown_timeout)
            logger.info(f"Terminated sandbox runtime (pid={process.pid})")

        if reader is not None:
            reader.join(self.shutdown_timeout)

        if connection is not None:
            connection.close()

    # -----------------------------------------
    # Run / stop
    # -----------------------------------------

    async def run(self, request: ExecutionRequest) -> HarnessOutcome:
        """
        Run a submission and wait for its outcome.

        Returns BUSY immediately, without touching the run in flight, when
        another run is pending. Starts the runtime if none is alive.
        Cancelling the awaiting task stops the run.
        """
        self._loop = asyncio.get_running_loop()

        if self._state == HarnessState.RUNNING:
            logger.info(f"Rejected run: run {self._active_run_id} is still in flight")
            return HarnessOutcome.busy()

        if not self.runtime_alive:
            self.initialize()

        self._run_counter += 1
        run_id = self._run_counter
        message = {
            "type": RuntimeMessageType.RUN.value,
            "run_id": run_id,
            **request.model_dump(),
        }

        try:
            self._connection.send(message)
        except (OSError, ValueError, pickle.PicklingError) as e:
            logger.error(f"Failed to send run {run_id} to sandbox runtime: {e}")
            return HarnessOutcome.failed(f"Runtime error: {e}")

        future = self._loop.create_future()
        self._state = HarnessState.RUNNING
        self._active_run_id = run_id
        self._pending = future
        self._timeout_seconds = request.timeout_ms / 1000

        if self._ready is not None and self._ready.is_set():
            self._arm_timer()
        else:
            logger.debug(f"Run {run_id} queued until the sandbox runtime is ready")

        logger.info(
            f"Run {run_id} started ({len(request.tests)} tests, "
            f"timeout={request.timeout_ms}ms)"
        )

        try:
            return await future
        except asyncio.CancelledError:
            if self._active_run_id == run_id:
                self.stop()
            raise

    def _arm_timer(self) -> None:
        if self._state != HarnessState.RUNNING or self._timer is not None:
            return

        self._timer = self._loop.call_later(
            self._timeout_seconds, self._on_timeout, self._active_run_id
        )

    def stop(self) -> Optional[HarnessOutcome]:
        """
        Stop the run in flight.

        Returns the STOPPED outcome delivered to the pending run, or None when
        nothing is running.
        """
        if self._state != HarnessState.RUNNING:
            return None

        run_id = self._active_run_id
        try:
            self._connection.send(
                {"type": RuntimeMessageType.STOP.value, "run_id": run_id}
            )
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to send stop for run {run_id}: {e}")

        outcome = HarnessOutcome.stopped()
        self._finish(outcome)
        return outcome

    def _finish(self, outcome: HarnessOutcome) -> None:
        """Resolve the pending run and return to IDLE."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        run_id = self._active_run_id
        future = self._pending
        self._pending = None
        self._active_run_id = None
        self._timeout_seconds = None
        self._state = HarnessState.IDLE

        if future is not None and not future.done():
            future.set_result(outcome)

        logger.info(f"Run {run_id} finished: {outcome.kind.value}")

    # -----------------------------------------
    # Runtime events (delivered on the event loop)
    # -----------------------------------------

    def _read_messages(
        self, connection, generation: int, ready: threading.Event
    ) -> None:
        """Reader thread: forward runtime messages to the event loop."""
        while True:
            try:
                message = connection.recv()
            except (EOFError, OSError):
                break
            if message.get("type") == RuntimeMessageType.READY:
                # Seen by run() even when no loop was bound at startup
                ready.set()
            self._dispatch(generation, self._on_message, message)

        self._dispatch(generation, self._on_runtime_exit)

    def _dispatch(self, generation: int, callback: Callable, *args) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug(f"No event loop for runtime event {callback.__name__}")
            return

        try:
            loop.call_soon_threadsafe(self._deliver, generation, callback, args)
        except RuntimeError:
            logger.debug(f"Event loop closed, dropped runtime event {callback.__name__}")

    def _deliver(self, generation: int, callback: Callable, args: tuple) -> None:
        if generation != self._generation:
            logger.debug(
                f"Ignoring {callback.__name__} from discarded runtime "
                f"(generation {generation})"
            )
            return
        callback(*args)

    def _on_message(self, message: dict) -> None:
        kind = message.get("type")
        run_id = message.get("run_id")

        if kind == RuntimeMessageType.READY:
            logger.debug("Sandbox runtime is ready")
            self._arm_timer()
            return

        if kind == RuntimeMessageType.STOPPED:
            # stop() already resolved the run locally
            logger.debug(f"Runtime acknowledged stop of run {run_id}")
            return

        if self._state != HarnessState.RUNNING or run_id != self._active_run_id:
            logger.debug(f"Ignoring stale {kind} message for run {run_id}")
            return

        if kind == RuntimeMessageType.RESULT:
            outcome = HarnessOutcome.completed(
                ExecutionResult.model_validate(message["result"])
            )
        elif kind == RuntimeMessageType.ERROR:
            outcome = HarnessOutcome.failed(message.get("message") or "Unknown error")
        elif kind == RuntimeMessageType.BUSY:
            outcome = HarnessOutcome.busy(message.get("message") or "Code is already running")
        else:
            logger.warning(f"Unknown message type from sandbox runtime: {kind}")
            return

        self._finish(outcome)

    def _on_timeout(self, run_id: int) -> None:
        if self._state != HarnessState.RUNNING or run_id != self._active_run_id:
            return

        logger.warning(f"Run {run_id} timed out")
        self._finish(HarnessOutcome.timed_out())

    def _on_runtime_exit(self) -> None:
        process = self._process
        exitcode = None
        if process is not None:
            # EOF can be seen slightly before the child is reaped
            process.join(self.shutdown_timeout)
            exitcode = process.exitcode
        logger.warning(f"Sandbox runtime exited (exitcode={exitcode})")

        if self._state == HarnessState.RUNNING:
            self._finish(
                HarnessOutcome.failed(
                    f"Runtime error: sandbox process exited unexpectedly "
                    f"(exit code {exitcode})"
                )
            )


# Singleton instance
_harness_instance: Optional[ExecutionHarness] = None


def get_execution_harness() -> ExecutionHarness:
    """Get or create the execution harness singleton."""
    global _harness_instance

    if _harness_instance is None:
        _harness_instance = ExecutionHarness()

    return _harness_instance
