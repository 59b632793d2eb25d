"""Tests for status events and command building."""

from pathlib import Path

import pytest

from vpn_toggle.vpn.command_factory import VPNCommandFactory
from vpn_toggle.vpn.commands import OPENVPN, ValidationError
from vpn_toggle.vpn.models import ErrorKind, StatusEvent, VPNStatus


class TestStatusEvent:

    @pytest.mark.parametrize("event, label", [
        (StatusEvent.connecting(), "Connecting..."),
        (StatusEvent.authenticating(), "Authenticating..."),
        (StatusEvent.connected(), "Connected"),
        (StatusEvent.disconnected(), "Disconnected"),
        (StatusEvent.error("Connection refused", ErrorKind.CONNECTION_REFUSED), "Error: Connection refused"),
    ])
    def test_labels(self, event, label):
        assert event.label == label

    def test_events_are_immutable(self):
        event = StatusEvent.connected()
        with pytest.raises(AttributeError):
            event.status = VPNStatus.ERROR

    def test_with_generation_keeps_payload(self):
        event = StatusEvent.error("Authentication failed", ErrorKind.AUTH_FAILURE)
        tagged = event.with_generation(3)
        assert tagged.generation == 3
        assert tagged.message == event.message
        assert tagged.kind is event.kind
        assert tagged.timestamp == event.timestamp

    def test_as_dict(self):
        data = StatusEvent.error("Cannot reach server", ErrorKind.HOST_UNREACHABLE, 2).as_dict()
        assert data["status"] == "error"
        assert data["label"] == "Error: Cannot reach server"
        assert data["kind"] == "host_unreachable"
        assert data["generation"] == 2

    def test_only_network_errors_are_transient(self):
        transient = {kind for kind in ErrorKind if kind.is_transient}
        assert transient == {ErrorKind.HOST_UNREACHABLE, ErrorKind.CONNECTION_REFUSED}


class TestCommands:

    def test_connect_command(self):
        cmd = VPNCommandFactory.connect(Path("/etc/openvpn/client.ovpn"))
        assert cmd == ["openvpn", "--config", "/etc/openvpn/client.ovpn"]

    def test_connect_with_custom_binary_and_sudo(self):
        cmd = VPNCommandFactory.connect(Path("client.ovpn"), binary="/usr/sbin/openvpn", use_sudo=True)
        assert cmd == ["sudo", "-n", "/usr/sbin/openvpn", "--config", "client.ovpn"]

    def test_kill_command(self):
        assert VPNCommandFactory.kill_vpn(4321) == ["sudo", "-n", "kill", "-TERM", "4321"]

    def test_unknown_option_rejected(self):
        with pytest.raises(ValidationError):
            OPENVPN.with_options(daemon=None)

    def test_config_requires_value(self):
        with pytest.raises(ValidationError):
            OPENVPN.with_options(config=None)

    def test_empty_executable_rejected(self):
        with pytest.raises(ValidationError):
            OPENVPN.with_executable("")
