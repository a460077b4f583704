"""
Code Sandbox Runtime

Runs learner-submitted Python solutions against test cases. The runtime
lives in a child process owned by ExecutionHarness and talks to it over a
multiprocessing connection; execute() can also be called in-process.

This is NOT a security boundary. A handful of host builtins are shadowed so
that submissions cannot block on stdin or open files by accident, but the
submission still runs with full interpreter access. Preemption comes from
the harness terminating the process, not from anything in here.

Usage:
    from orbis.services.learning.code_sandbox import SandboxRuntime

    runtime = SandboxRuntime()
    result = runtime.execute(
        ExecutionRequest(
            code="def solution(x): return x * 2",
            tests=[CodeTestCase(input=[5], expected=10)],
        )
    )
"""

import ast
import builtins
import copy
import logging
import pickle
import threading
import time
from typing import Any, Callable, Optional

from orbis.config import settings
from orbis.enums.learning import ConsoleChannel, RuntimeMessageType
from orbis.models.learning import (
    CodeTestResult,
    ConsoleEntry,
    ExecutionRequest,
    ExecutionResult,
)
from orbis.services.learning.equality import values_equal

logger = logging.getLogger(__name__)

# Host builtins replaced with None inside the submission namespace
DEFAULT_SHADOWED_BUILTINS = ("open", "input", "breakpoint", "exit", "quit", "help")

NO_ENTRY_POINT_MESSAGE = (
    "No main function found. Make sure to define your solution function."
)
BUSY_MESSAGE = "Code is already running"
STOPPED_MESSAGE = "Execution stopped"

# Request fields forwarded from a run message
_REQUEST_FIELDS = ("code", "tests", "timeout_ms", "entry_point")


class EntryPointNotFoundError(LookupError):
    """Raised when no callable entry point can be located in a submission."""


class ConsoleCapture:
    """
    Console object exposed to submissions.

    Exposed as `console` (log/error/warn/info) and backs the `print` builtin.
    """

    def __init__(self):
        self.entries: list[ConsoleEntry] = []

    def _record(self, channel: ConsoleChannel, args: tuple) -> None:
        self.entries.append(
            ConsoleEntry(channel=channel, args=[_format_arg(arg) for arg in args])
        )

    def log(self, *args) -> None:
        self._record(ConsoleChannel.LOG, args)

    def error(self, *args) -> None:
        self._record(ConsoleChannel.ERROR, args)

    def warn(self, *args) -> None:
        self._record(ConsoleChannel.WARN, args)

    def info(self, *args) -> None:
        self._record(ConsoleChannel.INFO, args)

    def print(self, *args, sep=" ", end="\n", file=None, flush=False) -> None:
        self._record(ConsoleChannel.LOG, args)


def _format_arg(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return str(value)
    except Exception:
        return object.__repr__(value)


def _portable(value: Any) -> Any:
    """Return value if it can cross the process boundary, else its repr."""
    try:
        pickle.dumps(value)
        return value
    except Exception:
        try:
            return repr(value)
        except Exception:
            return object.__repr__(value)


def _error_text(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class SandboxRuntime:
    """
    Executes ExecutionRequests and serves the harness message protocol.

    Only one submission executes at a time. A run message that arrives while
    a previous submission is still executing (including one the harness has
    already stopped) is answered with a busy reply.
    """

    def __init__(
        self,
        connection=None,
        entry_points: Optional[list[str]] = None,
        shadowed_builtins: tuple[str, ...] = DEFAULT_SHADOWED_BUILTINS,
    ):
        """
        Initialize the runtime.

        Args:
            connection: multiprocessing Connection to the harness
                (only needed for serve/handle)
            entry_points: Function names tried when a request does not name
                one (defaults to settings.SANDBOX_ENTRY_POINTS)
            shadowed_builtins: Builtins replaced with None for submissions
        """
        self.connection = connection
        self.entry_points = list(entry_points or settings.SANDBOX_ENTRY_POINTS)
        self.shadowed_builtins = tuple(shadowed_builtins)

        self._state_lock = threading.Lock()
        self._send_lock = threading.Lock()
        self._executing = False
        self._reply_wanted = False
        self._worker: Optional[threading.Thread] = None

    @property
    def executing(self) -> bool:
        return self._executing

    # -----------------------------------------
    # Execution
    # -----------------------------------------

    def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """
        Run a submission against every test case.

        Setup failures (syntax error, module level exception, missing entry
        point) produce success=False and no test results. Per-test exceptions
        are recorded on the test and do not stop later tests.
        """
        console = ConsoleCapture()
        namespace = self._build_namespace(console)

        try:
            compiled = compile(request.code, "<submission>", "exec")
            exec(compiled, namespace)
            func = self._find_entry_point(request, namespace)
        except SyntaxError as e:
            return ExecutionResult(
                success=False,
                error=f"SyntaxError: {e.msg} (line {e.lineno})",
                console_output=console.entries,
            )
        except EntryPointNotFoundError as e:
            return ExecutionResult(
                success=False, error=str(e), console_output=console.entries
            )
        except BaseException as e:
            # Includes SystemExit raised at module level
            return ExecutionResult(
                success=False,
                error=f"{type(e).__name__}: {e}",
                console_output=console.entries,
            )

        test_results = [
            self._run_test(func, index, test) for index, test in enumerate(request.tests)
        ]

        return ExecutionResult(
            success=True,
            console_output=console.entries,
            test_results=test_results,
        )

    def _build_namespace(self, console: ConsoleCapture) -> dict[str, Any]:
        submission_builtins = dict(vars(builtins))
        for name in self.shadowed_builtins:
            submission_builtins[name] = None
        submission_builtins["print"] = console.print

        return {
            "__builtins__": submission_builtins,
            "__name__": "__submission__",
            "console": console,
        }

    def _find_entry_point(
        self, request: ExecutionRequest, namespace: dict[str, Any]
    ) -> Callable:
        """
        Locate the function to call for each test.

        Order: request.entry_point, then the configured names, then the last
        top-level def in the source.
        """
        if request.entry_point:
            func = namespace.get(request.entry_point)
            if not callable(func):
                raise EntryPointNotFoundError(
                    f"Entry point '{request.entry_point}' is not defined. "
                    "Make sure to define your solution function."
                )
            return func

        for name in self.entry_points:
            func = namespace.get(name)
            if callable(func):
                return func

        last_def = _last_top_level_def(request.code)
        if last_def and callable(namespace.get(last_def)):
            return namespace[last_def]

        raise EntryPointNotFoundError(NO_ENTRY_POINT_MESSAGE)

    def _run_test(self, func: Callable, index: int, test) -> CodeTestResult:
        args = copy.deepcopy(test.input)
        start = time.perf_counter()

        try:
            actual = func(*args)
            error = None
            passed = values_equal(actual, test.expected)
        except BaseException as e:
            # sys.exit() in one test must not end the run
            actual = None
            error = _error_text(e)
            passed = False

        elapsed_ms = (time.perf_counter() - start) * 1000

        return CodeTestResult(
            index=index,
            passed=passed,
            input=test.input,
            expected=test.expected,
            actual=_portable(actual),
            execution_time_ms=round(elapsed_ms, 3),
            error=error,
        )

    # -----------------------------------------
    # Message protocol
    # -----------------------------------------

    def handle(self, message: dict) -> None:
        """Dispatch one message from the harness."""
        kind = message.get("type")

        if kind == RuntimeMessageType.RUN:
            self._start_run(message)
        elif kind == RuntimeMessageType.STOP:
            self._stop()
        else:
            logger.warning(f"Ignoring unknown runtime message type: {kind}")

    def serve(self) -> None:
        """Process harness messages until the connection closes."""
        while True:
            try:
                message = self.connection.recv()
            except (EOFError, OSError):
                break

            if message is None:
                break
            self.handle(message)

    def _start_run(self, message: dict) -> None:
        run_id = message.get("run_id")

        with self._state_lock:
            busy = self._executing
            if not busy:
                self._executing = True
                self._reply_wanted = True

        if busy:
            self._send(
                {
                    "type": RuntimeMessageType.BUSY.value,
                    "run_id": run_id,
                    "message": BUSY_MESSAGE,
                }
            )
            return

        self._worker = threading.Thread(
            target=self._run_worker,
            args=(run_id, message),
            name=f"sandbox-run-{run_id}",
            daemon=True,
        )
        self._worker.start()

    def _run_worker(self, run_id, message: dict) -> None:
        try:
            request = ExecutionRequest.model_validate(
                {field: message[field] for field in _REQUEST_FIELDS if field in message}
            )
            result = self.execute(request)
            reply = {
                "type": RuntimeMessageType.RESULT.value,
                "run_id": run_id,
                "result": result.model_dump(),
            }
        except BaseException as e:
            # SystemExit and friends from user code still produce a reply
            reply = {
                "type": RuntimeMessageType.ERROR.value,
                "run_id": run_id,
                "message": _error_text(e),
            }

        with self._state_lock:
            wanted = self._reply_wanted
            self._executing = False
            self._reply_wanted = False

        if wanted:
            self._send(reply)
        else:
            logger.debug(f"Dropping reply for stopped run {run_id}")

    def send_ready(self) -> None:
        """Tell the harness this runtime has finished starting up."""
        self._send({"type": RuntimeMessageType.READY.value})

    def _stop(self) -> None:
        with self._state_lock:
            self._reply_wanted = False

        self._send(
            {"type": RuntimeMessageType.STOPPED.value, "message": STOPPED_MESSAGE}
        )

    def _send(self, reply: dict) -> None:
        if self.connection is None:
            return

        with self._send_lock:
            try:
                self.connection.send(reply)
            except (pickle.PicklingError, TypeError, AttributeError) as e:
                self.connection.send(
                    {
                        "type": RuntimeMessageType.ERROR.value,
                        "run_id": reply.get("run_id"),
                        "message": f"Could not send result: {e}",
                    }
                )


def _last_top_level_def(code: str) -> Optional[str]:
    """Name of the last module-level function definition, if any."""
    try:
        tree = ast.parse(code)
    except SyntaxError:
        return None

    names = [node.name for node in tree.body if isinstance(node, ast.FunctionDef)]
    return names[-1] if names else None


def runtime_main(connection, entry_points: Optional[list[str]] = None) -> None:
    """Child process entry point. Must stay importable at module level."""
    runtime = SandboxRuntime(connection, entry_points=entry_points)
    runtime.send_ready()
    runtime.serve()
