"""
Mock process runner — scripted test double for every OpenSpec operation.

Used to exercise the engine without touching real package managers or
the real OpenSpec CLI.  Responses are keyed by an argv prefix; the
longest matching prefix wins.  Commands with no scripted response
behave like a missing executable (:class:`LaunchError`).

Queue several responses for the same prefix to script a sequence
(e.g. "missing" then "installed"); the last one repeats forever.

A response may be held on an :class:`asyncio.Event` after a given number
of lines, to observe or cancel a run while it is in flight.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

from specops.core.models.openspec import OperationOutcome, OutputStream
from specops.core.services.openspec.errors import LaunchError, ProbeInconclusive
from specops.core.services.openspec.runner import LineCallback


@dataclass
class MockResponse:
    """What the mock does when a matching command is run."""

    exit_code: int = 0
    lines: list[tuple[OutputStream, str]] = field(default_factory=list)
    launch_error: str | None = None
    times_out: bool = False
    gate: asyncio.Event | None = None
    gate_after: int = 0


@dataclass
class MockCall:
    """One recorded launch attempt."""

    command: str
    args: tuple[str, ...]
    cwd: str | None
    timeout: float | None

    @property
    def argv(self) -> tuple[str, ...]:
        return (self.command, *self.args)


class MockProcessRunner:
    """Drop-in replacement for :class:`ProcessRunner`."""

    def __init__(self) -> None:
        self._responses: dict[tuple[str, ...], list[MockResponse]] = {}
        self._call_log: list[MockCall] = []

    @property
    def call_log(self) -> list[MockCall]:
        """Every launch attempt this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        """Number of times run() has been called."""
        return len(self._call_log)

    def calls_for(self, *prefix: str) -> list[MockCall]:
        """Recorded calls whose argv starts with *prefix*."""
        return [c for c in self._call_log if c.argv[: len(prefix)] == prefix]

    # ── Scripting ────────────────────────────────────────────────

    def set_response(
        self,
        prefix: Sequence[str],
        *,
        exit_code: int = 0,
        stdout: Sequence[str] = (),
        stderr: Sequence[str] = (),
        lines: Sequence[tuple[OutputStream, str]] | None = None,
        gate: asyncio.Event | None = None,
        gate_after: int = 0,
    ) -> None:
        """Queue a completed run for commands starting with *prefix*.

        ``lines`` gives an explicit interleaving; otherwise all stdout
        lines are emitted before the stderr lines.  With ``gate``, the
        run waits for the event after emitting ``gate_after`` lines.
        """
        if lines is None:
            lines = [(OutputStream.STDOUT, t) for t in stdout]
            lines += [(OutputStream.STDERR, t) for t in stderr]
        self._queue(
            prefix,
            MockResponse(
                exit_code=exit_code, lines=list(lines), gate=gate, gate_after=gate_after,
            ),
        )

    def set_launch_error(self, prefix: Sequence[str], reason: str = "executable not found") -> None:
        """Queue a launch failure for commands starting with *prefix*."""
        self._queue(prefix, MockResponse(launch_error=reason))

    def set_timeout(self, prefix: Sequence[str]) -> None:
        """Queue a run that never finishes within its timeout."""
        self._queue(prefix, MockResponse(times_out=True))

    def _queue(self, prefix: Sequence[str], response: MockResponse) -> None:
        self._responses.setdefault(tuple(prefix), []).append(response)

    def _next_response(self, argv: tuple[str, ...]) -> MockResponse | None:
        matches = [p for p in self._responses if argv[: len(p)] == p]
        if not matches:
            return None
        queue = self._responses[max(matches, key=len)]
        return queue.pop(0) if len(queue) > 1 else queue[0]

    # ── Runner protocol ──────────────────────────────────────────

    async def run(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        cwd: str | None = None,
        on_line: LineCallback | None = None,
        timeout: float | None = None,
    ) -> OperationOutcome:
        call = MockCall(command=command, args=tuple(args), cwd=cwd, timeout=timeout)
        self._call_log.append(call)

        response = self._next_response(call.argv)
        if response is None:
            raise LaunchError(command, "executable not found")
        if response.launch_error is not None:
            raise LaunchError(command, response.launch_error)
        if response.times_out:
            raise ProbeInconclusive(" ".join(call.argv), timeout or 0.0)

        stdout: list[str] = []
        stderr: list[str] = []
        for index, (stream, text) in enumerate(response.lines):
            if response.gate is not None and index == response.gate_after:
                await response.gate.wait()
            (stdout if stream == OutputStream.STDOUT else stderr).append(text)
            if on_line is not None:
                on_line(stream, text)
            # Yield so concurrent runs interleave like real processes
            await asyncio.sleep(0)
        if response.gate is not None and response.gate_after >= len(response.lines):
            await response.gate.wait()

        return OperationOutcome(
            exit_code=response.exit_code,
            stdout="\n".join(stdout),
            stderr="\n".join(stderr),
            command=call.argv,
        )
