# src/meshup/lib/conflicts.py
import logging
from typing import List, Sequence

from rich.console import Console

from meshup.lib import commands
from meshup.lib.config import SetupConfig
from meshup.lib.domain import ConflictOutcome, NetworkInterface
from meshup.lib.probe import SystemProbe
from meshup.lib.prompts import ConsolePrompter
from meshup.lib.report import RunReport
from meshup.lib.runner import CommandRunner

logger = logging.getLogger(__name__)


class ConflictResolver:
    """Detect competing VPN/tunnel interfaces and take them down on operator consent"""

    def __init__(
        self,
        config: SetupConfig,
        *,
        runner: CommandRunner,
        probe: SystemProbe,
        prompter: ConsolePrompter,
        report: RunReport,
        console: Console,
    ) -> None:
        self.config = config
        self.runner = runner
        self.probe = probe
        self.prompter = prompter
        self.report = report
        self.console = console

    @staticmethod
    def find_conflicts(interfaces: Sequence[NetworkInterface]) -> List[NetworkInterface]:
        return [iface for iface in interfaces if iface.is_conflicting]

    def resolve(self) -> ConflictOutcome:
        conflicts = self.find_conflicts(self.probe.list_interfaces())
        if not conflicts:
            self.console.print("[green]\\[OK][/green] No conflicting VPNs detected.")
            return ConflictOutcome.NONE

        names = ", ".join(iface.name for iface in conflicts)
        logger.warning(f"Conflicting VPN interface(s) detected: {names}")
        self.console.print(f"[yellow]Conflicting VPN interface(s):[/yellow] [red]{names}[/red]")

        if not self.prompter.confirm("Attempt to disconnect these VPNs automatically?", default=True):
            self.report.warn("Proceeding with active VPNs. Routing conflicts are highly likely.")
            return ConflictOutcome.KEPT

        self._disconnect_clients(conflicts)

        for iface in conflicts:
            # the client-level disconnect may already have removed it
            if not self.probe.interface_present(iface.name):
                logger.debug(f"{iface.name} vanished, nothing to bring down")
                continue
            logger.info(f"Forcing interface {iface.name} down...")
            self.report.tolerate(
                self.runner.run(commands.link_down(iface.name)),
                f"Failed to bring down {iface.name}",
            )

        self.console.print("[green]\\[OK][/green] VPN cleanup routine finished.")
        return ConflictOutcome.DISCONNECTED

    def _disconnect_clients(self, conflicts: Sequence[NetworkInterface]) -> None:
        """Ask recognized commercial clients to disconnect themselves first"""
        for prefix, argv in self.config.client_disconnect.items():
            if not any(iface.name.startswith(prefix) for iface in conflicts):
                continue
            if not self.probe.command_exists(argv[0]):
                logger.debug(f"{argv[0]} not installed, skipping client disconnect")
                continue
            logger.info(f"Attempting {argv[0]} disconnect...")
            self.report.tolerate(
                self.runner.run(list(argv)),
                f"{argv[0]} returned an error, proceeding anyway",
            )
