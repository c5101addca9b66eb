"""
Process runner — the SINGLE PLACE where child processes are spawned.

Every higher-level operation (probe, detect, install, list, init) goes
through :class:`ProcessRunner`.  Output is split into lines and handed
to ``on_line`` as it arrives, long before the process exits; the full
text is also collected into the returned ``OperationOutcome``.

Callers cannot stop a run: once launched, a process runs to completion
unless a ``timeout`` was given, in which case it is killed and
:class:`ProbeInconclusive` is raised.  If the awaiting task itself is
cancelled (Ctrl-C under ``asyncio.run``), the child is killed too.

Lines longer than 1 MiB are dropped whole with a warning.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import time
from collections.abc import Callable, Sequence
from typing import Protocol

from specops.core.models.openspec import OperationOutcome, OutputStream
from specops.core.services.openspec.errors import LaunchError, ProbeInconclusive

logger = logging.getLogger(__name__)

LineCallback = Callable[[OutputStream, str], None]

# Per-line buffer limit for the stream readers (bytes)
_STREAM_LIMIT = 1024 * 1024


class ProcessRunner:
    """Launch commands and stream their stdout/stderr line by line.

    Args:
        env: Extra environment variables layered over ``os.environ``
            for every child.
    """

    def __init__(self, *, env: dict[str, str] | None = None) -> None:
        self._env = dict(env or {})

    async def run(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        cwd: str | None = None,
        on_line: LineCallback | None = None,
        timeout: float | None = None,
    ) -> OperationOutcome:
        """Run *command* with *args* and wait for it to exit.

        Args:
            command: Executable name or path.  Bare names are resolved
                on PATH (so Windows ``.cmd`` shims work).
            args: Arguments after the executable.
            cwd: Working directory for the child.
            on_line: Called with ``(stream, text)`` for each complete line,
                in the order each stream produced them.
            timeout: Seconds before the child is killed.  ``None`` waits
                forever.

        Returns:
            OperationOutcome with the exit code (zero or not) and the
            collected output.

        Raises:
            LaunchError: The process could not be started.
            ProbeInconclusive: ``timeout`` elapsed.
        """
        argv = (command, *args)
        executable = shutil.which(command) or command

        env = os.environ.copy()
        env.update(self._env)

        logger.debug("Running: %s (cwd=%s)", " ".join(argv), cwd or ".")
        start = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                env=env,
                limit=_STREAM_LIMIT,
            )
        except FileNotFoundError:
            if cwd and not os.path.isdir(cwd):
                raise LaunchError(command, f"working directory not found: {cwd}") from None
            raise LaunchError(command, "executable not found") from None
        except PermissionError:
            raise LaunchError(command, "permission denied") from None
        except OSError as e:
            raise LaunchError(command, str(e)) from e

        stdout_lines: list[str] = []
        stderr_lines: list[str] = []

        async def _collect() -> int:
            assert process.stdout is not None and process.stderr is not None
            await asyncio.gather(
                _pump(process.stdout, OutputStream.STDOUT, stdout_lines, on_line),
                _pump(process.stderr, OutputStream.STDERR, stderr_lines, on_line),
            )
            return await process.wait()

        try:
            if timeout is None:
                exit_code = await _collect()
            else:
                exit_code = await asyncio.wait_for(_collect(), timeout=timeout)
        except asyncio.TimeoutError:
            await _terminate(process)
            logger.debug("Timed out after %ss: %s", timeout, " ".join(argv))
            raise ProbeInconclusive(" ".join(argv), timeout or 0.0) from None
        except asyncio.CancelledError:
            await _terminate(process)
            logger.debug("Cancelled, killed: %s", " ".join(argv))
            raise

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.debug("Exited %d after %dms: %s", exit_code, elapsed_ms, " ".join(argv))

        return OperationOutcome(
            exit_code=exit_code,
            stdout="\n".join(stdout_lines),
            stderr="\n".join(stderr_lines),
            command=argv,
        )


async def _terminate(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        pass  # Process already gone
    await process.wait()


async def _pump(
    reader: asyncio.StreamReader,
    stream: OutputStream,
    sink: list[str],
    on_line: LineCallback | None,
) -> None:
    """Read *reader* to EOF, forwarding each line as soon as it is complete."""
    dropping = False
    while True:
        try:
            raw = await reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            raw = e.partial  # last line without a newline, or b"" at EOF
        except asyncio.LimitOverrunError as e:
            # Over _STREAM_LIMIT: discard up to and including the next newline
            if not dropping:
                logger.warning("Dropped over-long %s line", stream.value)
            dropping = True
            await reader.readexactly(e.consumed)
            continue
        if not raw:
            return
        if dropping:
            dropping = False  # tail of the dropped line
            continue
        text = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        sink.append(text)
        if on_line is not None:
            on_line(stream, text)


class Runner(Protocol):
    """Anything that can run a command the way :class:`ProcessRunner` does."""

    async def run(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        cwd: str | None = None,
        on_line: LineCallback | None = None,
        timeout: float | None = None,
    ) -> OperationOutcome:
        ...  # pragma: no cover
