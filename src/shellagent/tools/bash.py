"""Bash runner: executes one command line in a fresh shell process."""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)

EXIT_TIMED_OUT = 124
EXIT_NOT_STARTED = 127


@dataclass(frozen=True, slots=True)
class ShellOutput:
    """Raw result of one shell invocation."""

    exit_code: int
    stdout: bytes
    stderr: bytes
    duration: float = 0.0
    timed_out: bool = False


def default_shell() -> str:
    """Prefer bash, fall back to sh."""
    if shutil.which("bash"):
        return "bash"
    if shutil.which("sh"):
        return "sh"
    return "bash"


class BashRunner:
    """Runs each command as an independent ``<shell> -lc`` invocation.

    Nothing is shared between invocations: every command starts from the
    runner's working directory and the process environment.
    """

    def __init__(
        self,
        *,
        shell: str | None = None,
        cwd: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.shell = shell or default_shell()
        self.cwd = cwd
        self.timeout = timeout

    async def run(self, command: str) -> ShellOutput:
        """Execute *command*; a non-zero exit status is returned, not raised."""
        started = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                self.shell, "-lc", command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd,
            )
        except OSError as exc:
            logger.warning("Failed to start %s: %s", self.shell, exc)
            return ShellOutput(
                exit_code=EXIT_NOT_STARTED,
                stdout=b"",
                stderr=f"Failed to start process: {exc}\n".encode(),
                duration=time.monotonic() - started,
            )

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except TimeoutError:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            stdout, stderr = await proc.communicate()
            note = f"\nCommand timed out after {self.timeout}s and was killed.\n".encode()
            return ShellOutput(
                exit_code=EXIT_TIMED_OUT,
                stdout=stdout or b"",
                stderr=(stderr or b"") + note,
                duration=time.monotonic() - started,
                timed_out=True,
            )

        exit_code = proc.returncode if proc.returncode is not None else 0
        return ShellOutput(
            exit_code=exit_code,
            stdout=stdout or b"",
            stderr=stderr or b"",
            duration=time.monotonic() - started,
        )
