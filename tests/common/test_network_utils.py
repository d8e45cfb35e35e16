# tests/common/test_network_utils.py
import subprocess
from unittest.mock import MagicMock

from common.network_utils import (
    get_default_route,
    get_nmcli_device_status,
    parse_default_route,
    parse_interface_address,
    parse_nmcli_device_status,
    probe_connectivity,
)


def test_parse_default_route():
    output = "default via 192.168.1.1 dev eth0 proto dhcp src 192.168.1.20 metric 100\n"

    assert parse_default_route(output) == ("192.168.1.1", "eth0")


def test_parse_default_route_without_route():
    assert parse_default_route("") == (None, None)


def test_parse_interface_address():
    output = "2: eth0    inet 192.168.1.20/24 brd 192.168.1.255 scope global dynamic eth0\n"

    assert parse_interface_address(output) == "192.168.1.20"
    assert parse_interface_address("") is None


def test_parse_nmcli_device_status_handles_escaped_colons():
    output = "eth0:connected\nlo:unmanaged\nwlan0:disconnected\nbr\\:x:connected (externally)\n"

    assert parse_nmcli_device_status(output) == [
        ("eth0", "connected"),
        ("lo", "unmanaged"),
        ("wlan0", "disconnected"),
        ("br:x", "connected (externally)"),
    ]


def test_get_default_route_failure_is_unknown(mocker, mock_logger):
    mocker.patch(
        "common.network_utils.run_command",
        side_effect=subprocess.CalledProcessError(1, "ip"),
    )

    assert get_default_route(None, mock_logger) == (None, None)
    mock_logger.warning.assert_called_once()


def test_get_nmcli_device_status_missing_binary(mocker, mock_logger):
    mocker.patch(
        "common.network_utils.run_command", side_effect=FileNotFoundError("nmcli")
    )

    assert get_nmcli_device_status(None, mock_logger) is None


def test_probe_connectivity(mocker, mock_logger):
    mock_run = mocker.patch(
        "common.network_utils.run_command", return_value=MagicMock(returncode=0)
    )

    assert probe_connectivity("8.8.8.8", 2, None, mock_logger) is True
    mock_run.assert_called_once_with(
        ["ping", "-c", "1", "-W", "2", "8.8.8.8"],
        None,
        capture_output=True,
        check=False,
        current_logger=mock_logger,
    )

    mock_run.return_value = MagicMock(returncode=1)
    assert probe_connectivity("8.8.8.8", 2, None, mock_logger) is False
