"""
wabot Executor - Run external scripts without a shell

Captures both output streams and kills the process if it runs past its timeout.
"""
import asyncio
import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

logger = logging.getLogger("wabot.executor")

DEFAULT_TIMEOUT = 60  # seconds


@dataclass
class ScriptResult:
    """Outcome of one script run."""
    stdout: str
    stderr: str
    returncode: Optional[int]
    timed_out: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.error is None and self.returncode == 0

    def describe_failure(self) -> str:
        if self.timed_out:
            return "timed out"
        if self.error:
            return self.error
        detail = (self.stderr or self.stdout).strip()[:500]
        return f"exit {self.returncode}: {detail}" if detail else f"exit {self.returncode}"


def split_command(command: Union[str, Sequence[str]]) -> List[str]:
    if isinstance(command, str):
        return shlex.split(command)
    return list(command)


async def run_script(command: Union[str, Sequence[str]], timeout: float = DEFAULT_TIMEOUT,
                     cwd: Optional[Union[str, Path]] = None) -> ScriptResult:
    """
    Run a command and collect its output.

    Args:
        command: Argument list, or a string split with shlex (no shell involved)
        timeout: Seconds before the process is killed
        cwd: Optional working directory

    Returns:
        ScriptResult; spawn failures and timeouts are reported in it, not raised
    """
    argv = split_command(command)
    if not argv:
        return ScriptResult("", "", None, error="empty command")

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd) if cwd else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as e:
        logger.error(f"Could not start {argv[0]}: {e}")
        return ScriptResult("", "", None, error=f"spawn failed: {e}")

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.warning(f"{argv[0]} timed out after {timeout}s")
        return ScriptResult("", "", process.returncode, timed_out=True)

    return ScriptResult(
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        returncode=process.returncode,
    )
