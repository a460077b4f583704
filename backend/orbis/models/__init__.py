"""Pydantic models for the application."""

from orbis.models.learning import (
    CodeTestCase,
    CodeTestResult,
    ConsoleEntry,
    DailyCap,
    ExecutionRequest,
    ExecutionResult,
    HarnessOutcome,
    ScheduleEntry,
)

__all__ = [
    "CodeTestCase",
    "CodeTestResult",
    "ConsoleEntry",
    "DailyCap",
    "ExecutionRequest",
    "ExecutionResult",
    "HarnessOutcome",
    "ScheduleEntry",
]
