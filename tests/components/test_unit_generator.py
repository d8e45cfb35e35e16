# tests/components/test_unit_generator.py
import os
import shutil
import stat
import subprocess
import sys
from pathlib import Path

import pytest

from components.service.unit_generator import (
    ServiceComponent,
    ServiceDescriptor,
    ServiceUnitGenerator,
    render_helper_script,
    render_openrc_script,
    render_systemd_unit,
)
from provision import config as static_config
from provision.errors import BootstrapIOError

PYTHON = "/opt/device-manager/venv/bin/python"
ROOT = "/opt/device-manager/src"


@pytest.fixture
def descriptor(app_settings):
    return ServiceDescriptor.from_settings(app_settings)


def test_descriptor_from_settings(descriptor, app_settings):
    assert descriptor.name == "device_manager"
    assert descriptor.depends_on == ("docker", "NetworkManager")
    helper = app_settings.service.helper_script_path
    assert descriptor.start_command == f"{helper} start"
    assert descriptor.stop_command == f"{helper} stop"
    assert descriptor.restart_sec == 30


def test_helper_script_delegates_to_supervise():
    script = render_helper_script(PYTHON, ROOT)

    assert script.startswith("#!/bin/sh\n")
    assert f"cd {ROOT} || exit 1\n" in script
    assert f"PYTHONPATH={ROOT}" + "${PYTHONPATH:+:$PYTHONPATH}\n" in script
    assert "export PYTHONPATH\n" in script
    assert script.endswith(f"exec {PYTHON} -m provision.supervise " + '"${1:-start}"\n')


def test_helper_script_quotes_paths_with_spaces():
    script = render_helper_script("/opt/my env/bin/python", "/srv/device manager")

    assert "cd '/srv/device manager' || exit 1\n" in script
    assert "exec '/opt/my env/bin/python' -m provision.supervise" in script


@pytest.mark.skipif(shutil.which("sh") is None, reason="needs a POSIX shell")
def test_helper_script_imports_project_from_outside_checkout(tmp_path):
    script = tmp_path / "helper.sh"
    script.write_text(
        render_helper_script(sys.executable, static_config.PROJECT_ROOT, module="provision.config")
    )
    env = {key: value for key, value in os.environ.items() if key != "PYTHONPATH"}

    result = subprocess.run(
        ["sh", str(script)], cwd="/", env=env, capture_output=True, text=True
    )

    assert result.returncode == 0, result.stderr


def test_systemd_unit(descriptor):
    unit = render_systemd_unit(descriptor)

    assert "After=docker.service NetworkManager.service network-online.target\n" in unit
    assert "Requires=docker.service\n" in unit
    assert "Type=oneshot\n" in unit
    assert "RemainAfterExit=yes\n" in unit
    assert f"ExecStart={descriptor.start_command}\n" in unit
    assert "Restart=on-failure\n" in unit
    assert "RestartSec=30\n" in unit
    assert unit.endswith("WantedBy=multi-user.target\n")


def test_openrc_script(descriptor):
    script = render_openrc_script(descriptor)

    assert script.startswith("#!/sbin/openrc-run\n")
    assert "    need docker\n" in script
    assert "    after docker networkmanager\n" in script
    assert f"    {descriptor.stop_command}\n" in script


def test_systemd_registration(app_settings, fake_init, descriptor, mock_logger, tmp_path):
    generator = ServiceUnitGenerator(app_settings, fake_init, mock_logger, PYTHON)

    assert generator.ensure_registered(descriptor) is True

    unit = tmp_path / "systemd" / "device_manager.service"
    helper = Path(app_settings.service.helper_script_path)
    assert unit.read_text() == render_systemd_unit(descriptor)
    assert stat.S_IMODE(unit.stat().st_mode) == 0o644
    assert stat.S_IMODE(helper.stat().st_mode) == 0o755
    assert fake_init.calls == [
        ("reload", ""),
        ("enable", "device_manager"),
        ("start", "device_manager"),
    ]


def test_openrc_registration(app_settings, make_init, descriptor, mock_logger, tmp_path):
    init = make_init(kind="openrc")
    generator = ServiceUnitGenerator(app_settings, init, mock_logger, PYTHON)

    generator.ensure_registered(descriptor)

    script = tmp_path / "init.d" / "device_manager"
    assert script.read_text() == render_openrc_script(descriptor)
    assert stat.S_IMODE(script.stat().st_mode) == 0o755


def test_second_registration_keeps_files(app_settings, fake_init, descriptor, mock_logger, tmp_path):
    generator = ServiceUnitGenerator(app_settings, fake_init, mock_logger, PYTHON)
    generator.ensure_registered(descriptor)
    unit = tmp_path / "systemd" / "device_manager.service"
    unit.write_text("# edited by the operator\n")
    fake_init.calls.clear()

    assert generator.ensure_registered(descriptor) is False

    assert unit.read_text() == "# edited by the operator\n"
    assert fake_init.calls == [("enable", "device_manager")]


def test_enable_failure_is_io_error(app_settings, make_init, descriptor, mock_logger):
    init = make_init(fail_on={"enable"})
    generator = ServiceUnitGenerator(app_settings, init, mock_logger, PYTHON)

    with pytest.raises(BootstrapIOError) as excinfo:
        generator.ensure_registered(descriptor)

    assert excinfo.value.context["unit"].endswith("device_manager.service")


def test_component(app_settings, make_context, debian_profile, fake_init, mock_logger):
    component = ServiceComponent(app_settings, make_context(debian_profile), mock_logger)

    assert component.is_satisfied() is False
    component.ensure()

    assert component.is_satisfied() is True
    assert "device_manager" in fake_init.active
