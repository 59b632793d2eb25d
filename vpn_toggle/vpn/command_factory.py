"""Factory for creating VPN-related commands."""

from pathlib import Path

from .commands import OPENVPN, KILL_TERM


class VPNCommandFactory:
    """Factory for creating VPN management commands."""

    @staticmethod
    def connect(config_path: Path, binary: str = "openvpn", use_sudo: bool = False) -> list[str]:
        """Create the command that runs the VPN client in the foreground."""
        cmd = OPENVPN.with_executable(binary).with_options(config=str(config_path))

        if use_sudo:
            cmd = cmd.as_sudo()

        return cmd.build()

    @staticmethod
    def kill_vpn(pid: int) -> list[str]:
        """Create the command that sends SIGTERM to a VPN client started with sudo."""
        return KILL_TERM.with_arg(str(pid)).as_sudo().build()
