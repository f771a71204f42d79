# src/meshup/lib/runner.py
import logging
import subprocess
from dataclasses import dataclass
from typing import Sequence, Tuple

logger = logging.getLogger(__name__)

RC_NOT_FOUND = 127


@dataclass(frozen=True)
class CommandResult:
    """Exit status and output of one external command"""
    argv: Tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command(self) -> str:
        return " ".join(self.argv)


class CommandRunner:
    """Run host commands; failures are reported through CommandResult, never raised"""

    def run(self, argv: Sequence[str], capture: bool = True) -> CommandResult:
        """
        Run a command to completion.

        Args:
            argv: Command as list of strings
            capture: Capture stdout/stderr. When False the child inherits the
                terminal, which interactive commands (QR codes, login links) need.

        Returns:
            CommandResult; a missing executable yields return code 127
        """
        cmd = tuple(argv)
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            proc = subprocess.run(list(cmd), capture_output=capture, text=True, check=False)
        except OSError as e:
            logger.debug(f"Could not execute {cmd[0]}: {e}")
            return CommandResult(cmd, RC_NOT_FOUND, "", str(e))

        logger.debug(f"{cmd[0]} exited with {proc.returncode}")
        return CommandResult(cmd, proc.returncode, proc.stdout or "", proc.stderr or "")
