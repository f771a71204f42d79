# src/meshup/lib/config.py
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from meshup.lib.domain import ReadinessCondition

STUB_READY = ReadinessCondition(interval=1.0, max_attempts=10, description="resolver stub file")
SOCKET_READY = ReadinessCondition(interval=0.5, max_attempts=15, description="daemon control socket")
ADDRESS_READY = ReadinessCondition(interval=1.0, max_attempts=10, description="VPN address")


@dataclass(frozen=True)
class SetupConfig:
    """Everything a run needs to know about the host, resolved once at startup"""
    interface: str = "tailscale0"
    vpn_package: str = "tailscale"
    vpn_daemon: str = "tailscaled"
    vpn_cli: str = "tailscale"
    resolver_service: str = "systemd-resolved"
    network_manager: str = "NetworkManager"
    resolv_conf: Path = Path("/etc/resolv.conf")
    stub_resolv: Path = Path("/run/systemd/resolve/stub-resolv.conf")
    nm_conf_dir: Path = Path("/etc/NetworkManager/conf.d")
    nm_dropin_name: str = "96-tailscale.conf"
    modules_load_dir: Path = Path("/etc/modules-load.d")
    module_dropin_name: str = "99-tailscale-uinput.conf"
    input_module: str = "uinput"
    portal_package: str = "xdg-desktop-portal-wlr"
    tunnel_prefixes: Tuple[str, ...] = ("tun", "wg", "ppp")
    client_prefixes: Tuple[str, ...] = ("CloudflareWARP", "proton", "nord")
    # interface prefix -> native disconnect command of that client
    client_disconnect: Dict[str, Tuple[str, ...]] = field(
        default_factory=lambda: {
            "CloudflareWARP": ("warp-cli", "disconnect"),
            "nord": ("nordvpn", "disconnect"),
        }
    )
    lockfile: Path = Path("/var/lock/meshup.lock")
    release_file: Path = Path("/etc/arch-release")
    stub_ready: ReadinessCondition = STUB_READY
    socket_ready: ReadinessCondition = SOCKET_READY
    address_ready: ReadinessCondition = ADDRESS_READY
    color: bool = True

    @property
    def nm_dropin(self) -> Path:
        return self.nm_conf_dir / self.nm_dropin_name

    @property
    def module_dropin(self) -> Path:
        return self.modules_load_dir / self.module_dropin_name

    @property
    def conflict_prefixes(self) -> Tuple[str, ...]:
        return self.tunnel_prefixes + self.client_prefixes


_PATH_OVERRIDES = {
    "MESHUP_LOCKFILE": "lockfile",
    "MESHUP_RESOLV_CONF": "resolv_conf",
    "MESHUP_STUB_RESOLV": "stub_resolv",
    "MESHUP_NM_CONF_DIR": "nm_conf_dir",
    "MESHUP_MODULES_LOAD_DIR": "modules_load_dir",
    "MESHUP_RELEASE_FILE": "release_file",
}


def color_enabled(environ: Mapping[str, str]) -> bool:
    """Colors are on unless NO_COLOR is set or the terminal is dumb"""
    if "NO_COLOR" in environ:
        return False
    return environ.get("TERM", "xterm-256color") != "dumb"


def load_config(environ: Optional[Mapping[str, str]] = None) -> SetupConfig:
    """
    Build the run configuration from defaults and MESHUP_* environment overrides.

    Args:
        environ: Environment mapping, defaults to os.environ

    Returns:
        Frozen SetupConfig
    """
    if environ is None:
        environ = os.environ

    overrides: Dict[str, object] = {}
    for var, attr in _PATH_OVERRIDES.items():
        if value := environ.get(var):
            overrides[attr] = Path(os.path.expanduser(value))

    if interface := environ.get("MESHUP_INTERFACE"):
        overrides["interface"] = interface

    overrides["color"] = color_enabled(environ)
    return SetupConfig(**overrides)
