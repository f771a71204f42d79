# src/meshup/lib/vpn.py
from typing import Optional

from meshup.lib import commands
from meshup.lib.runner import CommandResult, CommandRunner


class VpnClient:
    """The mesh-VPN command line client, queried by exit code"""

    def __init__(self, runner: CommandRunner, cli: str = "tailscale") -> None:
        self.runner = runner
        self.cli = cli

    def daemon_responsive(self) -> bool:
        return self.runner.run(commands.vpn_ping_daemon(self.cli)).ok

    def is_authenticated(self) -> bool:
        return self.runner.run(commands.vpn_status(self.cli)).ok

    def authenticate_qr(self) -> CommandResult:
        return self.runner.run(commands.vpn_up_qr(self.cli), capture=False)

    def authenticate_link(self) -> CommandResult:
        return self.runner.run(commands.vpn_up(self.cli), capture=False)

    def ipv4_address(self) -> Optional[str]:
        """First IPv4 address the client reports, or None"""
        result = self.runner.run(commands.vpn_ip4(self.cli))
        if not result.ok:
            return None
        lines = result.stdout.split()
        return lines[0] if lines else None
