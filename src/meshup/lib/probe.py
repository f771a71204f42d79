# src/meshup/lib/probe.py
"""Read-only queries of current host state."""
import logging
import re
import shutil
from typing import Callable, List, Optional, Sequence

from meshup.lib import commands
from meshup.lib.domain import InterfaceKind, NetworkInterface
from meshup.lib.runner import CommandRunner

logger = logging.getLogger(__name__)

__all__ = [
    "SystemProbe",
    "classify_interface",
    "parse_link_table",
]

# Handles: "4: wg0: <POINTOPOINT,NOARP,UP,LOWER_UP> mtu 1420 ... state UNKNOWN ..."
#          "7: veth1a2b@if6: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 ... state UP ..."
_LINK_LINE = re.compile(r"^\d+:\s+([^:@\s]+)(?:@[^:\s]+)?:\s+<([^>]*)>(.*)$")
_STATE = re.compile(r"\bstate\s+(\S+)")


def classify_interface(
    name: str, tunnel_prefixes: Sequence[str], client_prefixes: Sequence[str]
) -> InterfaceKind:
    """Classify an interface by name prefix"""
    if name.startswith(tuple(client_prefixes)):
        return InterfaceKind.VPN_CLIENT
    if name.startswith(tuple(tunnel_prefixes)):
        return InterfaceKind.TUNNEL
    return InterfaceKind.UNKNOWN


def parse_link_table(
    output: str, tunnel_prefixes: Sequence[str], client_prefixes: Sequence[str]
) -> List[NetworkInterface]:
    """
    Parse one-line-per-link output of ``ip -o link show``.

    Lines that do not look like link records are skipped.
    """
    interfaces: List[NetworkInterface] = []
    for line in output.splitlines():
        match = _LINK_LINE.match(line.strip())
        if not match:
            continue
        name, flags, rest = match.groups()
        state = _STATE.search(rest)
        is_up = (state is not None and state.group(1) == "UP") or "UP" in flags.split(",")
        interfaces.append(
            NetworkInterface(
                name=name,
                kind=classify_interface(name, tunnel_prefixes, client_prefixes),
                is_up=is_up,
            )
        )
    return interfaces


class SystemProbe:
    """Query host state; an unavailable tool reads as "false" or "absent"."""

    def __init__(
        self,
        runner: CommandRunner,
        *,
        tunnel_prefixes: Sequence[str] = (),
        client_prefixes: Sequence[str] = (),
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.runner = runner
        self.tunnel_prefixes = tuple(tunnel_prefixes)
        self.client_prefixes = tuple(client_prefixes)
        self._which = which

    def command_exists(self, name: str) -> bool:
        return self._which(name) is not None

    def service_active(self, name: str) -> bool:
        return self.runner.run(commands.service_is_active(name)).ok

    def package_installed(self, name: str) -> bool:
        return self.runner.run(commands.package_query(name)).ok

    def interface_present(self, name: str) -> bool:
        return self.runner.run(commands.link_show(name)).ok

    def list_interfaces(self) -> List[NetworkInterface]:
        result = self.runner.run(commands.link_list())
        if not result.ok:
            logger.debug(f"Link listing failed ({result.returncode}); assuming no interfaces")
            return []
        return parse_link_table(result.stdout, self.tunnel_prefixes, self.client_prefixes)
