"""
Error taxonomy for the OpenSpec orchestration engine.

A failing exit code is NOT an exception: it is a normal
``OperationOutcome`` that the session records as a FAILED sub-flow
(``FailureKind.NON_ZERO_EXIT``).
"""

from __future__ import annotations


class OrchestrationError(Exception):
    """Base class for every error raised by the engine."""


class LaunchError(OrchestrationError):
    """The external process could not be started.

    Raised before any output line is delivered (missing executable,
    permission denied, missing working directory).
    """

    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"Cannot launch '{command}': {reason}")
        self.command = command
        self.reason = reason


class PreconditionViolation(OrchestrationError):
    """An operation was requested outside its allowed state.

    Always raised before a process is launched.
    """


class ListingFailed(OrchestrationError):
    """The OpenSpec CLI's capability list could not be determined."""


class ProbeInconclusive(OrchestrationError):
    """A bounded invocation neither succeeded nor failed within its timeout."""

    def __init__(self, command: str, timeout: float) -> None:
        super().__init__(f"'{command}' did not finish within {timeout:g}s")
        self.command = command
        self.timeout = timeout
