# src/meshup/lib/auth.py
"""Interactive device authentication as an explicit state machine.

States and transitions::

    NOT_AUTHENTICATED --status ok--> AUTHENTICATED
    NOT_AUTHENTICATED --status fails--> AWAITING_QR
    AWAITING_QR --qr ok--> AUTHENTICATED
    AWAITING_QR --qr fails, "r"--> AWAITING_QR
    AWAITING_QR --qr fails, "l"--> AWAITING_LINK
    AWAITING_QR --qr fails, "q"--> ABORTED
    AWAITING_LINK --link ok--> AUTHENTICATED
    AWAITING_LINK --link fails--> SetupError

The QR branch has no retry limit: only success or the operator ends it.
"""
import logging
from typing import Callable, Dict, List

from rich.console import Console

from meshup.lib.domain import (
    AuthenticationAttempt,
    AuthMode,
    AuthOutcome,
    AuthState,
    RetryChoice,
    SetupError,
)
from meshup.lib.prompts import ConsolePrompter
from meshup.lib.vpn import VpnClient

logger = logging.getLogger(__name__)


class AuthenticationFlow:
    def __init__(self, client: VpnClient, *, prompter: ConsolePrompter, console: Console) -> None:
        self.client = client
        self.prompter = prompter
        self.console = console
        self.state = AuthState.NOT_AUTHENTICATED
        self.history: List[AuthState] = []
        self.attempts: List[AuthenticationAttempt] = []
        self._handlers: Dict[AuthState, Callable[[], AuthState]] = {
            AuthState.NOT_AUTHENTICATED: self._check_status,
            AuthState.AWAITING_QR: self._authenticate_qr,
            AuthState.AWAITING_LINK: self._authenticate_link,
        }
        missing = {s for s in AuthState if not s.is_terminal} - set(self._handlers)
        if missing:
            raise RuntimeError(f"No transition handler for {sorted(s.name for s in missing)}")

    def run(self) -> AuthState:
        """
        Drive the flow until it reaches AUTHENTICATED or ABORTED.

        Raises:
            SetupError: link authentication failed, no fallback remains
        """
        self._enter(AuthState.NOT_AUTHENTICATED)
        while not self.state.is_terminal:
            self._enter(self._handlers[self.state]())
        return self.state

    def _enter(self, state: AuthState) -> None:
        logger.debug(f"Authentication state: {self.state.name} -> {state.name}")
        self.state = state
        self.history.append(state)

    def _check_status(self) -> AuthState:
        if self.client.is_authenticated():
            self.console.print("[green]\\[OK][/green] Tailscale is already authenticated.")
            return AuthState.AUTHENTICATED
        self.console.print("\n[cyan]\\[STEP][/cyan] Authentication Required")
        return AuthState.AWAITING_QR

    def _authenticate_qr(self) -> AuthState:
        self.console.print("[cyan]Generating QR code...[/cyan]")
        result = self.client.authenticate_qr()
        if result.ok:
            self.attempts.append(AuthenticationAttempt(AuthMode.QR_CODE, AuthOutcome.SUCCESS, result.returncode))
            return AuthState.AUTHENTICATED

        logger.warning(f"Auth process failed (code: {result.returncode}).")
        choice = self.prompter.choose_retry()
        if choice == RetryChoice.QUIT:
            self.attempts.append(AuthenticationAttempt(AuthMode.QR_CODE, AuthOutcome.USER_ABORT, result.returncode))
            logger.info("Authentication cancelled by operator.")
            return AuthState.ABORTED

        self.attempts.append(AuthenticationAttempt(AuthMode.QR_CODE, AuthOutcome.FAILURE, result.returncode))
        if choice == RetryChoice.LINK:
            return AuthState.AWAITING_LINK
        return AuthState.AWAITING_QR

    def _authenticate_link(self) -> AuthState:
        result = self.client.authenticate_link()
        if not result.ok:
            self.attempts.append(
                AuthenticationAttempt(AuthMode.INTERACTIVE_LINK, AuthOutcome.FAILURE, result.returncode)
            )
            raise SetupError(f"Tailscale text authentication failed (exit {result.returncode}).")
        self.attempts.append(
            AuthenticationAttempt(AuthMode.INTERACTIVE_LINK, AuthOutcome.SUCCESS, result.returncode)
        )
        return AuthState.AUTHENTICATED
