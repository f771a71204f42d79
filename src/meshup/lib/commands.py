# src/meshup/lib/commands.py
"""Argument vectors for the host's command-line collaborators."""
import os
import sys
from typing import List, Mapping, Optional, Sequence

SYSTEMCTL = "systemctl"
PACMAN = "pacman"
IP = "ip"
MODPROBE = "modprobe"
FIREWALL_CMD = "firewall-cmd"
UFW = "ufw"


def service_is_active(service: str) -> List[str]:
    return [SYSTEMCTL, "is-active", "--quiet", service]


def service_enable_now(service: str) -> List[str]:
    return [SYSTEMCTL, "enable", "--now", service]


def service_enable(service: str) -> List[str]:
    return [SYSTEMCTL, "enable", service]


def service_restart(service: str) -> List[str]:
    return [SYSTEMCTL, "restart", service]


def service_reload(service: str) -> List[str]:
    return [SYSTEMCTL, "reload", service]


def package_query(package: str) -> List[str]:
    return [PACMAN, "-Q", package]


def package_install(package: str) -> List[str]:
    return [PACMAN, "-S", "--needed", "--noconfirm", package]


def package_remove(package: str) -> List[str]:
    return [PACMAN, "-Rns", "--noconfirm", package]


def link_list() -> List[str]:
    return [IP, "-o", "link", "show"]


def link_show(interface: str) -> List[str]:
    return [IP, "link", "show", interface]


def link_down(interface: str) -> List[str]:
    return [IP, "link", "set", "dev", interface, "down"]


def module_load(module: str) -> List[str]:
    return [MODPROBE, module]


def firewalld_trust(interface: str) -> List[str]:
    return [FIREWALL_CMD, "--zone=trusted", f"--add-interface={interface}", "--permanent"]


def firewalld_reload() -> List[str]:
    return [FIREWALL_CMD, "--reload"]


def ufw_allow(interface: str) -> List[str]:
    return [UFW, "allow", "in", "on", interface]


def vpn_status(cli: str) -> List[str]:
    """Exits 0 only when the client is logged in and running"""
    return [cli, "status"]


def vpn_ping_daemon(cli: str) -> List[str]:
    """Exits 0 whenever the daemon answers on its control socket"""
    return [cli, "status", "--json"]


def vpn_up_qr(cli: str) -> List[str]:
    return [cli, "up", "--qr"]


def vpn_up(cli: str) -> List[str]:
    return [cli, "up"]


def vpn_ip4(cli: str) -> List[str]:
    return [cli, "ip", "-4"]


def sudo_reexec(argv: Sequence[str], environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Re-run this CLI as root, keeping color preferences and MESHUP_* overrides"""
    if environ is None:
        environ = os.environ
    preserved = ["TERM", "NO_COLOR"] + sorted(name for name in environ if name.startswith("MESHUP_"))
    return [
        "sudo",
        f"--preserve-env={','.join(preserved)}",
        sys.executable,
        "-m",
        "meshup.bin.cli",
        *argv,
    ]
