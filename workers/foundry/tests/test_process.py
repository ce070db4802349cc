"""
test_process — run_command supervision.

Children are short Python scripts run with the current interpreter, so
these tests need no external tools.

Tests verify invariant properties:
  - A non-zero exit surfaces the exit status and the stderr text.
  - On timeout the child gets the grace period, is killed afterwards, and
    is reaped before run_command returns.
  - Cancelling the calling task cancels the command the same way.
"""
import asyncio
import io
import os
import sys
import time

import pytest

from foundry.core.process import _tail, run_command
from foundry.errors import (
    BuildTimeoutError,
    CommandFailedError,
    ProcessExecutionError,
)

PY = sys.executable


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


# writes its pid, then sleeps
SLEEPER = (
    "import os, sys, time\n"
    "open(sys.argv[1], 'w').write(str(os.getpid()))\n"
    "time.sleep(60)\n"
)


class TestRunCommand:

    def test_stdout_returned(self):
        out = asyncio.run(run_command(PY, ["-c", "print('hello')"]))
        assert out.strip() == "hello"

    def test_output_forwarded_to_sinks(self):
        stdout, stderr = io.StringIO(), io.StringIO()
        asyncio.run(run_command(
            PY,
            ["-c", "import sys; print('out'); print('err', file=sys.stderr)"],
            stdout=stdout,
            stderr=stderr,
        ))
        assert stdout.getvalue().strip() == "out"
        assert stderr.getvalue().strip() == "err"

    def test_env_and_cwd(self, tmp_path):
        out = asyncio.run(run_command(
            PY,
            ["-c", "import os; print(os.environ['FOUNDRY_X'], os.getcwd())"],
            env={"FOUNDRY_X": "42"},
            cwd=str(tmp_path),
        ))
        value, cwd = out.split()
        assert value == "42"
        assert os.path.samefile(cwd, tmp_path)

    def test_nonzero_exit(self):
        with pytest.raises(CommandFailedError) as exc_info:
            asyncio.run(run_command(
                PY, ["-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"]
            ))
        err = exc_info.value
        assert err.returncode == 3
        assert err.stderr == "boom"
        assert "boom" in str(err)

    def test_missing_executable(self, tmp_path):
        with pytest.raises(ProcessExecutionError):
            asyncio.run(run_command(str(tmp_path / "no-such-binary"), []))

    def test_timeout_kills_after_grace(self, tmp_path):
        pid_file = tmp_path / "pid"
        start = time.monotonic()
        with pytest.raises(BuildTimeoutError) as exc_info:
            asyncio.run(run_command(
                PY, ["-c", SLEEPER, str(pid_file)],
                timeout=0.5,
                grace_period=0.5,
            ))
        elapsed = time.monotonic() - start

        assert isinstance(exc_info.value, TimeoutError)
        assert elapsed < 30
        pid = int(pid_file.read_text())
        assert not _pid_alive(pid)

    def test_timeout_waits_for_graceful_exit(self, tmp_path):
        """A child that exits within the grace period is not killed."""
        marker = tmp_path / "marker"
        script = "import sys, time; time.sleep(0.5); open(sys.argv[1], 'w').write('done')"
        start = time.monotonic()
        with pytest.raises(BuildTimeoutError):
            asyncio.run(run_command(
                PY, ["-c", script, str(marker)],
                timeout=0.1,
                grace_period=10,
            ))
        elapsed = time.monotonic() - start

        assert marker.read_text() == "done"
        assert elapsed < 10

    def test_cancellation(self, tmp_path):
        pid_file = tmp_path / "pid"

        async def scenario():
            task = asyncio.ensure_future(run_command(
                PY, ["-c", SLEEPER, str(pid_file)],
                grace_period=0.5,
            ))
            for _ in range(100):
                if pid_file.exists() and pid_file.read_text():
                    break
                await asyncio.sleep(0.05)
            task.cancel()
            await task

        with pytest.raises(asyncio.CancelledError):
            asyncio.run(scenario())

        pid = int(pid_file.read_text())
        assert not _pid_alive(pid)


def test_tail():
    assert _tail("  short \n") == "short"
    long = "x" * 10 + "y" * 5
    assert _tail(long, limit=5) == "...yyyyy"
