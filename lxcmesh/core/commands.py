"""Thin wrapper around subprocess for host-side tool invocations."""
import shlex
import subprocess
from dataclasses import dataclass
from typing import List, Optional

from lxcmesh.core.config import get_config
from lxcmesh.core.errors import StepError
from lxcmesh.core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """Outcome of one external command."""
    cmd: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def check(self, what: str) -> "CommandResult":
        """Raise StepError unless the command succeeded."""
        if not self.ok:
            detail = self.stderr.strip() or self.stdout.strip()
            message = f"{what} failed (exit {self.returncode})"
            if detail:
                message += f": {detail.splitlines()[-1]}"
            raise StepError(message, returncode=self.returncode, stderr=self.stderr)
        return self


def run_command(
    cmd: List[str],
    timeout: Optional[float] = None,
    mock: bool = False,
    mock_stdout: str = "",
) -> CommandResult:
    """Run an external command and capture its output.

    Missing executables and timeouts are reported as non-zero results
    (127 and 124) so callers handle every failure the same way.

    Args:
        cmd: Argument vector
        timeout: Seconds before the command is killed (runtime default if None)
        mock: Log the command instead of running it
        mock_stdout: Output returned in mock mode
    """
    command_str = shlex.join(cmd)

    if mock:
        logger.info(f"MOCK: Would run: {command_str}")
        return CommandResult(cmd=cmd, returncode=0, stdout=mock_stdout)

    if timeout is None:
        timeout = get_config().command_timeout

    logger.debug(f"Command: {command_str}")

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        logger.error(f"Command not found: {cmd[0]}")
        return CommandResult(cmd=cmd, returncode=127, stderr=f"{cmd[0]}: command not found")
    except subprocess.TimeoutExpired:
        logger.error(f"Command timed out after {timeout}s: {command_str}")
        return CommandResult(cmd=cmd, returncode=124, stderr=f"timed out after {timeout}s")

    if result.returncode != 0:
        logger.debug(f"Exit {result.returncode}: {result.stderr.strip()}")

    return CommandResult(
        cmd=cmd,
        returncode=result.returncode,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
    )
