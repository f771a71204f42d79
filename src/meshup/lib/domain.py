# src/meshup/lib/domain.py
"""Domain model for meshup.

This module contains the core domain types that represent the fundamental
concepts in meshup: observed network interfaces, readiness conditions,
authentication attempts and the outcome of a setup run.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_INTERRUPTED = 130
EXIT_TERMINATED = 143


class SetupError(Exception):
    """Fatal condition: the run cannot continue."""

    def __init__(self, message: str, exit_code: int = EXIT_FATAL) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class InterfaceKind(Enum):
    TUNNEL = "tunnel"
    VPN_CLIENT = "vpn-client"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class NetworkInterface:
    """A kernel network interface as observed in the live link table."""
    name: str
    kind: InterfaceKind = InterfaceKind.UNKNOWN
    is_up: bool = False

    @property
    def is_conflicting(self) -> bool:
        return self.kind != InterfaceKind.UNKNOWN


@dataclass(frozen=True)
class ReadinessCondition:
    """How long to wait for an asynchronous side effect.

    The predicate is evaluated at most ``max_attempts`` times, ``interval``
    seconds apart.
    """
    interval: float
    max_attempts: int
    description: str = ""


class AuthState(Enum):
    NOT_AUTHENTICATED = "not_authenticated"
    AWAITING_QR = "awaiting_qr"
    AWAITING_LINK = "awaiting_link"
    AUTHENTICATED = "authenticated"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (AuthState.AUTHENTICATED, AuthState.ABORTED)


class AuthMode(Enum):
    QR_CODE = "qr"
    INTERACTIVE_LINK = "link"


class AuthOutcome(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    USER_ABORT = "user-abort"


class RetryChoice(Enum):
    """Operator answer after a failed QR authentication."""
    RETRY_QR = "r"
    LINK = "l"
    QUIT = "q"


@dataclass(frozen=True)
class AuthenticationAttempt:
    mode: AuthMode
    outcome: AuthOutcome
    exit_code: Optional[int] = None


class ConflictOutcome(Enum):
    NONE = "none"
    DISCONNECTED = "disconnected"
    KEPT = "kept"


class FirewallKind(Enum):
    FIREWALLD = "firewalld"
    UFW = "ufw"
    NONE = "none"


@dataclass
class SetupResult:
    """Outcome of a complete orchestrated run."""
    auth_state: Optional[AuthState] = None
    address: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def is_complete(self) -> bool:
        return self.auth_state == AuthState.AUTHENTICATED and self.address is not None
