# src/meshup/lib/orchestrator.py
import logging
import shutil
import time
from typing import Callable, Optional

from rich.console import Console
from rich.panel import Panel

from meshup.lib.auth import AuthenticationFlow
from meshup.lib.config import SetupConfig
from meshup.lib.conflicts import ConflictResolver
from meshup.lib.domain import AuthState, SetupError, SetupResult
from meshup.lib.foundation import FoundationConfigurer
from meshup.lib.probe import SystemProbe
from meshup.lib.prompts import ConsolePrompter
from meshup.lib.readiness import Sleep, poll
from meshup.lib.report import RunReport
from meshup.lib.runner import CommandRunner
from meshup.lib.service import ServiceActivator
from meshup.lib.vpn import VpnClient

logger = logging.getLogger(__name__)


class Orchestrator:
    """Run the setup phases strictly in order.

    conflict resolution -> foundation -> service activation -> authentication
    -> address resolution. A SetupError from any phase ends the run; warnings
    accumulate in the report and never block.
    """

    def __init__(
        self,
        config: SetupConfig,
        *,
        runner: CommandRunner,
        prompter: ConsolePrompter,
        console: Console,
        which: Callable[[str], Optional[str]] = shutil.which,
        sleep: Sleep = time.sleep,
    ) -> None:
        self.config = config
        self.console = console
        self.prompter = prompter
        self.sleep = sleep
        self.report = RunReport()

        self.probe = SystemProbe(
            runner,
            tunnel_prefixes=config.tunnel_prefixes,
            client_prefixes=config.client_prefixes,
            which=which,
        )
        self.client = VpnClient(runner, config.vpn_cli)
        self.conflicts = ConflictResolver(
            config, runner=runner, probe=self.probe, prompter=prompter, report=self.report, console=console
        )
        self.foundation = FoundationConfigurer(
            config, runner=runner, probe=self.probe, report=self.report, console=console, sleep=sleep
        )
        self.service = ServiceActivator(
            config,
            runner=runner,
            probe=self.probe,
            client=self.client,
            report=self.report,
            console=console,
            sleep=sleep,
        )
        self.auth = AuthenticationFlow(self.client, prompter=prompter, console=console)

    def _step(self, title: str) -> None:
        self.console.print(f"\n[cyan]\\[STEP][/cyan] {title}")

    def run(self) -> SetupResult:
        """
        Execute every phase.

        Returns:
            SetupResult; ``cancelled`` is set when the operator declined to
            start, ``auth_state`` is ABORTED when they quit authentication

        Raises:
            SetupError: any fatal phase condition
        """
        result = SetupResult(warnings=self.report.warnings)

        self._step("Initializing Setup...")
        self.console.print("This will configure Tailscale and system networking optimizations.")
        if not self.prompter.confirm("Proceed?", default=True):
            logger.info("Cancelled.")
            result.cancelled = True
            return result

        self._step("Network Conflict Check")
        self.conflicts.resolve()

        self._step("System Foundation")
        self.foundation.configure()

        self._step("Tailscale Network")
        self.service.activate()

        result.auth_state = self.auth.run()
        if result.auth_state == AuthState.ABORTED:
            self.console.print("[yellow]Authentication cancelled.[/yellow]")
            return result

        result.address = self.resolve_address()
        self._complete(result)
        return result

    def resolve_address(self) -> str:
        logger.info("Resolving Tailscale IP mapping...")
        address = poll(self.client.ipv4_address, self.config.address_ready, self.sleep)
        if not address:
            raise SetupError(
                f"VPN authenticated, but no address was assigned on {self.config.interface}."
            )
        return address

    def _complete(self, result: SetupResult) -> None:
        self._step("Setup Complete!")
        body = (
            "[green]Tailscale is Active![/green]\n"
            f"  - IP Address: [cyan]{result.address}[/cyan]\n"
            "  - Routable across the Tailnet."
        )
        if result.warnings:
            body += f"\n\n[yellow]{len(result.warnings)} warning(s) during setup, see log above.[/yellow]"
        self.console.print(Panel(body, title="Remote Network Configuration", style="cyan"))
