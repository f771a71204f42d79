# src/meshup/lib/preflight.py
"""Process-level preconditions: root privileges, platform, single instance, signals."""
import fcntl
import logging
import os
import signal
from pathlib import Path
from types import FrameType
from typing import Optional, Sequence, TextIO

from meshup.lib import commands
from meshup.lib.config import SetupConfig
from meshup.lib.domain import EXIT_TERMINATED, SetupError

logger = logging.getLogger(__name__)


def ensure_root(argv: Sequence[str]) -> None:
    """Replace the current process with a sudo re-run unless already root"""
    if os.geteuid() == 0:
        return
    logger.info("Escalating permissions...")
    cmd = commands.sudo_reexec(argv)
    try:
        os.execvp(cmd[0], cmd)
    except OSError as e:
        raise SetupError(f"Root privileges required and sudo could not be executed: {e}") from e


def check_platform(config: SetupConfig) -> None:
    if not config.release_file.is_file():
        raise SetupError("This tool is strictly optimized for Arch Linux.")


def _terminate(signum: int, frame: Optional[FrameType]) -> None:
    raise SystemExit(EXIT_TERMINATED)


def install_signal_handlers() -> None:
    """SIGTERM exits with 143; SIGINT keeps raising KeyboardInterrupt"""
    signal.signal(signal.SIGTERM, _terminate)
    signal.signal(signal.SIGINT, signal.default_int_handler)


class RunLock:
    """Exclusive, non-blocking advisory lock held for the whole run.

    The kernel drops the lock when the descriptor closes, including on
    abnormal process exit.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._fh: Optional[TextIO] = None

    def acquire(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fh = open(self.path, "w")
        except OSError as e:
            raise SetupError(f"Cannot open lock file {self.path}: {e}") from e
        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            fh.close()
            raise SetupError("Another instance is running.")
        self._fh = fh
        logger.debug(f"Acquired run lock {self.path}")

    def release(self) -> None:
        if self._fh is None:
            return
        fcntl.flock(self._fh.fileno(), fcntl.LOCK_UN)
        self._fh.close()
        self._fh = None

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
