"""
Process supervisor — run one external command under asyncio.

``run_command`` starts the process, then races its completion against task
cancellation and an optional timeout.  There is exactly one waiter per
process (a ``communicate()`` task); every branch awaits that same waiter, so
the process is reaped once and the waiter never outlives the call.

On cancellation or timeout the process is not killed right away: it gets
``grace_period`` seconds to exit on its own (on Ctrl-C the terminal has
already signalled the whole process group), after which it is killed.
"""
from __future__ import annotations

import asyncio
import logging
import shutil
from typing import Mapping, Optional, Sequence, TextIO, Tuple

from foundry.errors import (
    BuildTimeoutError,
    CommandFailedError,
    ProcessExecutionError,
)

logger = logging.getLogger(__name__)

GRACE_PERIOD = 15.0

# stderr kept in error messages
STDERR_TAIL_CHARS = 4000


def _tail(text: str, limit: int = STDERR_TAIL_CHARS) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return "..." + text[-limit:]


def _forward(data: Optional[bytes], sink: Optional[TextIO]) -> str:
    text = data.decode("utf-8", errors="replace") if data else ""
    if sink is not None and text:
        sink.write(text)
        sink.flush()
    return text


async def _reap(
    proc: asyncio.subprocess.Process,
    waiter: "asyncio.Future[Tuple[bytes, bytes]]",
    grace_period: float,
) -> None:
    """Give the process ``grace_period`` seconds, then kill it."""
    try:
        await asyncio.wait_for(asyncio.shield(waiter), grace_period)
    except asyncio.TimeoutError:
        logger.warning("Process %d still running after %.1fs grace period, killing", proc.pid, grace_period)
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await waiter


async def run_command(
    command: str,
    args: Sequence[str],
    *,
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[str] = None,
    timeout: Optional[float] = None,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
    grace_period: float = GRACE_PERIOD,
) -> str:
    """
    Run ``command args...`` and wait for it.

    Parameters
    ----------
    command, args
        Executable and its arguments (no shell).
    env
        Complete environment for the child.  None inherits ours.
    cwd
        Working directory.
    timeout
        Seconds before the command is abandoned.  None or 0 means no
        timeout beyond the caller's own cancellation.
    stdout, stderr
        Optional text sinks that receive the command's output.
    grace_period
        Seconds a cancelled/timed-out process gets before it is killed.

    Returns
    -------
    str
        The command's stdout.

    Raises
    ------
    ProcessExecutionError
        The command could not be started or awaited.
    CommandFailedError
        The command exited with a non-zero status.
    BuildTimeoutError
        ``timeout`` elapsed.
    asyncio.CancelledError
        The calling task was cancelled.
    """
    cmdline = " ".join([command, *args])
    # resolved against our PATH; the child environment may not carry one
    executable = shutil.which(command) or command
    logger.debug("Running %s (cwd=%s, timeout=%s)", cmdline, cwd, timeout)

    try:
        proc = await asyncio.create_subprocess_exec(
            executable,
            *args,
            env=dict(env) if env is not None else None,
            cwd=cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ProcessExecutionError(f"starting {cmdline!r}: {e}") from e

    waiter = asyncio.ensure_future(proc.communicate())

    try:
        out, err = await asyncio.wait_for(asyncio.shield(waiter), timeout or None)
    except asyncio.TimeoutError as e:
        await _reap(proc, waiter, grace_period)
        raise BuildTimeoutError(f"{cmdline!r} timed out after {timeout}s") from e
    except asyncio.CancelledError:
        await _reap(proc, waiter, grace_period)
        raise
    except OSError as e:
        raise ProcessExecutionError(f"waiting for {cmdline!r}: {e}") from e

    out_text = _forward(out, stdout)
    err_text = _forward(err, stderr)

    if proc.returncode != 0:
        raise CommandFailedError(command, args, proc.returncode, _tail(err_text))

    return out_text
