"""
Learning System Enums

Defines enums for the star-rating spaced repetition schedule and the
code execution harness protocol.
"""

from enum import Enum


class Rating(int, Enum):
    """
    Star ratings for a practice attempt.

    User self-assessment after re-solving a problem. Each rating maps to a
    fixed re-test offset in the scheduling engine.
    """

    BOMBED = 1  # Could not solve it, enters the 1/3/7 day trail
    MEH = 2  # Shaky, retry within 36 hours
    SLOW = 3  # Got it, but slowly
    COMFORTABLE = 4  # Solved comfortably
    CONFIDENT = 5  # Could teach it


class ConsoleChannel(str, Enum):
    """Console streams captured from submitted code."""

    LOG = "log"
    ERROR = "error"
    WARN = "warn"
    INFO = "info"


class HarnessState(str, Enum):
    """
    Execution harness states.

    State transitions:
    - IDLE → RUNNING (run accepted)
    - RUNNING → IDLE (completed, failed, timed out, stopped or reinitialized)
    """

    IDLE = "idle"
    RUNNING = "running"


class OutcomeKind(str, Enum):
    """Outcome of a single harness run request, as delivered to the caller."""

    COMPLETED = "completed"  # Runtime returned an ExecutionResult
    FAILED = "failed"  # Setup error or runtime crash
    TIMED_OUT = "timed_out"  # Timer fired before a result arrived
    STOPPED = "stopped"  # Cancelled by stop() or initialize()
    BUSY = "busy"  # Rejected, another run is in flight


class RuntimeMessageType(str, Enum):
    """
    Message types exchanged between the harness and the runtime process.

    Requests: RUN, STOP. Replies: RESULT, ERROR, BUSY, STOPPED. READY is sent
    once by a freshly started runtime before it reads any request.
    """

    RUN = "run"
    STOP = "stop"
    RESULT = "result"
    ERROR = "error"
    BUSY = "busy"
    STOPPED = "stopped"
    READY = "ready"
