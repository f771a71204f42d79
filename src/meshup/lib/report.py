# src/meshup/lib/report.py
import logging
from dataclasses import dataclass, field
from typing import List

from meshup.lib.runner import CommandResult

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    """Soft failures collected over a run; they never stop progression"""
    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def tolerate(self, result: CommandResult, message: str) -> bool:
        """
        Accept the outcome of a best-effort command.

        This is the one place where a failed CommandResult is turned into a
        warning instead of an error.

        Returns:
            result.ok
        """
        if not result.ok:
            self.warn(f"{message} (`{result.command}` exited {result.returncode})")
        return result.ok
