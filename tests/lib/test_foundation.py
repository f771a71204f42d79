# tests/lib/test_foundation.py
import os
from pathlib import Path

import pytest

from meshup.lib import commands
from meshup.lib.foundation import FoundationConfigurer
from meshup.lib.probe import SystemProbe
from meshup.lib.report import RunReport


@pytest.fixture
def report() -> RunReport:
    return RunReport()


@pytest.fixture
def configurer(config, runner, which, sleeper, console, report) -> FoundationConfigurer:
    probe = SystemProbe(runner, which=which)
    return FoundationConfigurer(
        config, runner=runner, probe=probe, report=report, console=console, sleep=sleeper
    )


def _snapshot(root: Path) -> dict:
    state = {}
    for path in sorted(root.rglob("*")):
        if path.is_symlink():
            state[str(path)] = ("link", os.readlink(path))
        elif path.is_file():
            state[str(path)] = ("file", path.read_text())
    return state


class TestDnsStub:
    def test_links_resolv_conf_and_backs_up_regular_file(self, configurer, config, report) -> None:
        config.stub_resolv.write_text("nameserver 127.0.0.53\n")
        config.resolv_conf.write_text("nameserver 9.9.9.9\n")

        assert configurer.link_dns_stub() is True

        assert config.resolv_conf.is_symlink()
        assert os.readlink(config.resolv_conf) == str(config.stub_resolv)
        backups = list(config.resolv_conf.parent.glob("resolv.conf.bak.*"))
        assert len(backups) == 1
        assert backups[0].read_text() == "nameserver 9.9.9.9\n"
        assert report.warnings == []

    def test_existing_symlink_is_not_backed_up(self, configurer, config) -> None:
        config.stub_resolv.write_text("nameserver 127.0.0.53\n")
        config.resolv_conf.symlink_to(config.stub_resolv)

        configurer.link_dns_stub()

        assert list(config.resolv_conf.parent.glob("resolv.conf.bak.*")) == []

    def test_waits_for_stub_to_appear(self, configurer, config, sleeper) -> None:
        sleeper.on(2, lambda: config.stub_resolv.write_text("nameserver 127.0.0.53\n"))

        assert configurer.link_dns_stub() is True
        assert sleeper.calls == [1.0, 1.0]

    def test_missing_stub_leaves_dns_untouched(self, configurer, config, sleeper, report) -> None:
        config.resolv_conf.write_text("nameserver 9.9.9.9\n")

        assert configurer.link_dns_stub() is False

        assert len(sleeper.calls) == config.stub_ready.max_attempts - 1
        assert not config.resolv_conf.is_symlink()
        assert config.resolv_conf.read_text() == "nameserver 9.9.9.9\n"
        assert len(report.warnings) == 1

    def test_enables_inactive_resolver(self, configurer, config, runner) -> None:
        runner.script(commands.service_is_active(config.resolver_service), 3)
        config.stub_resolv.write_text("")

        configurer.link_dns_stub()

        assert runner.called(commands.service_enable_now(config.resolver_service))

    def test_active_resolver_is_left_alone(self, configurer, config, runner) -> None:
        config.stub_resolv.write_text("")

        configurer.link_dns_stub()

        assert not runner.called(commands.service_enable_now(config.resolver_service))


class TestNetworkManager:
    def test_skipped_when_not_installed(self, configurer, config) -> None:
        assert configurer.harden_network_manager() is False
        assert not config.nm_dropin.exists()

    def test_writes_unmanaged_dropin_and_reloads(self, configurer, config, runner, which) -> None:
        which.available.add("NetworkManager")

        assert configurer.harden_network_manager() is True

        assert config.nm_dropin.read_text() == (
            "[keyfile]\nunmanaged-devices=interface-name:tailscale0\n"
        )
        assert runner.called(commands.service_reload("NetworkManager"))
        assert not runner.called(commands.service_restart("NetworkManager"))

    def test_falls_back_to_restart(self, configurer, runner, which, report) -> None:
        which.available.add("NetworkManager")
        runner.script(commands.service_reload("NetworkManager"), 1)

        configurer.harden_network_manager()

        assert runner.called(commands.service_restart("NetworkManager"))
        assert report.warnings == []

    def test_inactive_manager_is_not_reloaded(self, configurer, runner, which) -> None:
        which.available.add("NetworkManager")
        runner.script(commands.service_is_active("NetworkManager"), 3)

        configurer.harden_network_manager()

        assert not runner.called(commands.service_reload("NetworkManager"))

    def test_undecodable_dropin_is_replaced_without_aborting(self, configurer, config, which, report) -> None:
        which.available.add("NetworkManager")
        config.nm_dropin.parent.mkdir(parents=True)
        config.nm_dropin.write_bytes(b"\xff\xfe garbage")

        assert configurer.harden_network_manager() is True

        assert config.nm_dropin.read_text().startswith("[keyfile]\n")
        assert len(list(config.nm_conf_dir.glob("96-tailscale.conf.bak.*"))) == 1
        assert report.warnings == []


class TestInputModule:
    def test_writes_dropin_and_loads_module(self, configurer, config, runner) -> None:
        assert configurer.persist_input_module() is True

        assert config.module_dropin.read_text() == "uinput\n"
        assert runner.called(commands.module_load("uinput"))

    def test_load_failure_is_soft(self, configurer, config, runner, report) -> None:
        runner.script(commands.module_load("uinput"), 1)

        assert configurer.persist_input_module() is True

        assert config.module_dropin.exists()
        assert len(report.warnings) == 1

    def test_undecodable_dropin_is_replaced(self, configurer, config) -> None:
        config.module_dropin.parent.mkdir(parents=True)
        config.module_dropin.write_bytes(b"\xff\xfe")

        assert configurer.persist_input_module() is True
        assert config.module_dropin.read_text() == "uinput\n"


class TestPortal:
    def test_not_installed_is_noop(self, configurer, config, runner) -> None:
        runner.script(commands.package_query(config.portal_package), 1)

        assert configurer.remove_conflicting_portal() is False
        assert not runner.called(commands.package_remove(config.portal_package))

    def test_removes_installed_portal(self, configurer, config, runner) -> None:
        assert configurer.remove_conflicting_portal() is True
        assert runner.called(commands.package_remove(config.portal_package))

    def test_removal_failure_is_soft(self, configurer, config, runner, report) -> None:
        runner.script(commands.package_remove(config.portal_package), 1)

        assert configurer.remove_conflicting_portal() is False
        assert len(report.warnings) == 1


def test_configure_twice_yields_same_host_state(configurer, config, which, tmp_path) -> None:
    which.available.add("NetworkManager")
    config.stub_resolv.write_text("nameserver 127.0.0.53\n")
    config.resolv_conf.write_text("nameserver 9.9.9.9\n")

    configurer.configure()
    once = _snapshot(tmp_path / "host")
    configurer.configure()

    assert _snapshot(tmp_path / "host") == once
