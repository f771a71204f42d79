# src/meshup/lib/foundation.py
import logging
import time

from rich.console import Console

from meshup.lib import commands
from meshup.lib.config import SetupConfig
from meshup.lib.mutation import backup_file, link_file, write_dropin
from meshup.lib.probe import SystemProbe
from meshup.lib.readiness import Sleep, wait_for
from meshup.lib.report import RunReport
from meshup.lib.runner import CommandRunner

logger = logging.getLogger(__name__)


class FoundationConfigurer:
    """Bring DNS, NetworkManager, kernel module and portal state into a known-good shape.

    Every step is idempotent and a failing step only produces a warning.
    """

    def __init__(
        self,
        config: SetupConfig,
        *,
        runner: CommandRunner,
        probe: SystemProbe,
        report: RunReport,
        console: Console,
        sleep: Sleep = time.sleep,
    ) -> None:
        self.config = config
        self.runner = runner
        self.probe = probe
        self.report = report
        self.console = console
        self.sleep = sleep

    def configure(self) -> None:
        self.link_dns_stub()
        self.harden_network_manager()
        self.persist_input_module()
        self.remove_conflicting_portal()

    def link_dns_stub(self) -> bool:
        cfg = self.config
        logger.info(f"Configuring {cfg.resolver_service}...")
        if not self.probe.service_active(cfg.resolver_service):
            self.report.tolerate(
                self.runner.run(commands.service_enable_now(cfg.resolver_service)),
                f"Could not enable {cfg.resolver_service}",
            )

        if not wait_for(cfg.stub_resolv.exists, cfg.stub_ready, self.sleep):
            self.report.warn(f"Could not locate {cfg.stub_resolv}. DNS may require manual validation.")
            return False

        try:
            backup_file(cfg.resolv_conf)
            link_file(cfg.stub_resolv, cfg.resolv_conf)
        except OSError as e:
            self.report.warn(f"Failed to link {cfg.resolv_conf} to {cfg.stub_resolv}: {e}")
            return False

        self.console.print(f"[green]\\[OK][/green] DNS linked to {cfg.resolver_service} stub.")
        return True

    def harden_network_manager(self) -> bool:
        cfg = self.config
        if not self.probe.command_exists(cfg.network_manager):
            logger.debug(f"{cfg.network_manager} not installed, skipping drop-in")
            return False

        logger.info(f"Hardening {cfg.network_manager}...")
        content = f"[keyfile]\nunmanaged-devices=interface-name:{cfg.interface}\n"
        try:
            write_dropin(cfg.nm_dropin, content)
        except OSError as e:
            self.report.warn(f"Failed to write {cfg.nm_dropin}: {e}")
            return False

        if self.probe.service_active(cfg.network_manager):
            if not self.runner.run(commands.service_reload(cfg.network_manager)).ok:
                logger.debug(f"Reload of {cfg.network_manager} failed, restarting instead")
                self.report.tolerate(
                    self.runner.run(commands.service_restart(cfg.network_manager)),
                    f"Could not reload or restart {cfg.network_manager}",
                )

        self.console.print(f"[green]\\[OK][/green] {cfg.network_manager} instructed to ignore {cfg.interface}.")
        return True

    def persist_input_module(self) -> bool:
        cfg = self.config
        logger.info(f"Configuring {cfg.input_module} module...")
        try:
            write_dropin(cfg.module_dropin, f"{cfg.input_module}\n")
        except OSError as e:
            self.report.warn(f"Failed to write {cfg.module_dropin}: {e}")
            return False

        # the drop-in loads it on next boot even if this fails
        self.report.tolerate(
            self.runner.run(commands.module_load(cfg.input_module)),
            f"Failed to immediately load {cfg.input_module}",
        )
        self.console.print(f"[green]\\[OK][/green] {cfg.input_module} module persistence enabled.")
        return True

    def remove_conflicting_portal(self) -> bool:
        cfg = self.config
        if not self.probe.package_installed(cfg.portal_package):
            return False

        logger.warning(f"Purging conflicting {cfg.portal_package}...")
        if self.report.tolerate(
            self.runner.run(commands.package_remove(cfg.portal_package)),
            f"Failed to cleanly remove {cfg.portal_package}. Manual check advised.",
        ):
            self.console.print("[green]\\[OK][/green] Portal conflict eliminated.")
            return True
        return False
