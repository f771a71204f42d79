# src/meshup/lib/service.py
import logging
import time

from rich.console import Console

from meshup.lib import commands
from meshup.lib.config import SetupConfig
from meshup.lib.domain import FirewallKind, SetupError
from meshup.lib.probe import SystemProbe
from meshup.lib.readiness import Sleep, wait_for
from meshup.lib.report import RunReport
from meshup.lib.runner import CommandRunner
from meshup.lib.vpn import VpnClient

logger = logging.getLogger(__name__)


class ServiceActivator:
    """Install and (re)start the VPN daemon, then wait until it answers"""

    def __init__(
        self,
        config: SetupConfig,
        *,
        runner: CommandRunner,
        probe: SystemProbe,
        client: VpnClient,
        report: RunReport,
        console: Console,
        sleep: Sleep = time.sleep,
    ) -> None:
        self.config = config
        self.runner = runner
        self.probe = probe
        self.client = client
        self.report = report
        self.console = console
        self.sleep = sleep

    def activate(self) -> FirewallKind:
        """
        Bring the daemon into a clean, responsive state.

        Raises:
            SetupError: installation or restart failed, or the control socket
                never became responsive
        """
        self.ensure_installed()
        self.restart_daemon()
        self.await_control_socket()
        return self.apply_firewall_policy()

    def ensure_installed(self) -> None:
        cfg = self.config
        if self.probe.package_installed(cfg.vpn_package):
            return
        logger.info(f"Installing {cfg.vpn_package}...")
        result = self.runner.run(commands.package_install(cfg.vpn_package))
        if not result.ok:
            raise SetupError(f"Failed to install {cfg.vpn_package} (exit {result.returncode}).")

    def restart_daemon(self) -> None:
        # restart rather than start: a daemon stuck in a bad state gets a clean slate
        cfg = self.config
        logger.info(f"Restarting {cfg.vpn_daemon}...")
        result = self.runner.run(commands.service_restart(cfg.vpn_daemon))
        if not result.ok:
            raise SetupError(f"Failed to restart {cfg.vpn_daemon} (exit {result.returncode}).")
        self.report.tolerate(
            self.runner.run(commands.service_enable(cfg.vpn_daemon)),
            f"Could not enable {cfg.vpn_daemon} at boot",
        )

    def await_control_socket(self) -> None:
        cfg = self.config
        logger.info(f"Awaiting {cfg.vpn_daemon} control socket readiness...")
        if not wait_for(self.client.daemon_responsive, cfg.socket_ready, self.sleep):
            raise SetupError(f"{cfg.vpn_daemon} started, but its control socket is unresponsive.")
        self.console.print(f"[green]\\[OK][/green] {cfg.vpn_daemon} is active and responding.")

    def apply_firewall_policy(self) -> FirewallKind:
        iface = self.config.interface
        logger.info("Applying firewall policies...")
        if self.probe.command_exists(commands.FIREWALL_CMD) and self.probe.service_active("firewalld"):
            if self.report.tolerate(
                self.runner.run(commands.firewalld_trust(iface)),
                f"Could not add {iface} to the trusted firewalld zone",
            ):
                self.report.tolerate(
                    self.runner.run(commands.firewalld_reload()),
                    "Could not reload firewalld",
                )
            self.console.print("[green]\\[OK][/green] Firewalld updated.")
            return FirewallKind.FIREWALLD

        if self.probe.command_exists(commands.UFW) and self.probe.service_active("ufw"):
            self.report.tolerate(
                self.runner.run(commands.ufw_allow(iface)),
                f"Could not allow inbound traffic on {iface} in ufw",
            )
            self.console.print("[green]\\[OK][/green] UFW updated.")
            return FirewallKind.UFW

        logger.info("No active firewall manager detected.")
        return FirewallKind.NONE
