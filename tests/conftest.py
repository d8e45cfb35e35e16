# tests/conftest.py
import logging
from typing import Dict, List, Optional, Set
from unittest.mock import MagicMock

import pytest

from common.init_systems import InitSystem
from common.package_manager import PackageManager
from components.context import HostContext
from provision.config_models import AppSettings, Architecture, HostFamily
from provision.host_profile import HostProfile


class FakeInitSystem(InitSystem):
    """Records every call; services listed in `active` report as running."""

    def __init__(self, app_settings, kind="systemd", active=None, fail_on=None):
        super().__init__(app_settings, MagicMock(spec=logging.Logger))
        self.kind = kind
        self.active: Set[str] = set(active or [])
        self.fail_on: Set[str] = set(fail_on or [])
        self.calls: List[tuple] = []

    def _record(self, verb: str, service: str) -> None:
        self.calls.append((verb, service))
        if (verb, service) in self.fail_on or verb in self.fail_on:
            raise OSError(f"{verb} {service} failed")

    def enable(self, service, runlevel=None):
        self._record("enable", service)

    def disable(self, service):
        self._record("disable", service)

    def start(self, service):
        self._record("start", service)
        self.active.add(service)

    def stop(self, service):
        self._record("stop", service)
        self.active.discard(service)

    def restart(self, service):
        self._record("restart", service)
        self.active.add(service)

    def is_active(self, service):
        return service in self.active

    def reload_units(self):
        self.calls.append(("reload", ""))

    def verbs(self, verb: str) -> List[str]:
        return [service for called, service in self.calls if called == verb]


class FakePackageManager(PackageManager):
    """In-memory package database."""

    kind = "fake"

    def __init__(self, app_settings, installed=None, broken=None):
        super().__init__(app_settings, MagicMock(spec=logging.Logger))
        self.installed: Set[str] = set(installed or [])
        self.broken: Set[str] = set(broken or [])
        self.refreshes = 0
        self.install_calls: List[List[str]] = []
        self.queries = 0

    def is_installed(self, package):
        self.queries += 1
        return package in self.installed

    def refresh_index(self):
        self.refreshes += 1

    def install(self, packages):
        self.install_calls.append(list(packages))
        for package in packages:
            if package in self.broken:
                raise OSError(f"cannot install {package}")
            self.installed.add(package)


class FakeRuntime:
    """Container runtime double with a scripted number of failing starts."""

    def __init__(self, images=None, running=None, stopped=None, failing_starts=0):
        self.images: Set[str] = set(images or [])
        self.running: Set[str] = set(running or [])
        self.stopped: Set[str] = set(stopped or [])
        self.failing_starts = failing_starts
        self.run_calls: List[Dict] = []
        self.removed: List[str] = []
        self.pulled: List[str] = []
        self.pull_error: Optional[Exception] = None

    def image_exists(self, image):
        return image in self.images

    def pull(self, image):
        if self.pull_error:
            raise self.pull_error
        self.pulled.append(image)
        self.images.add(image)

    def is_running(self, name):
        return name in self.running

    def exists(self, name):
        return name in self.running or name in self.stopped

    def remove(self, name):
        self.removed.append(name)
        self.running.discard(name)
        self.stopped.discard(name)

    def stop(self, name):
        self.running.discard(name)
        self.stopped.add(name)

    def run_detached(self, name, image, restart_policy, network_mode, volumes):
        self.run_calls.append(
            {
                "name": name,
                "image": image,
                "restart_policy": restart_policy,
                "network_mode": network_mode,
                "volumes": list(volumes),
            }
        )
        if self.failing_starts > 0:
            self.failing_starts -= 1
            # A failed run can leave a created but not running container.
            self.stopped.add(name)
            raise OSError("container failed to start")
        self.running.add(name)
        return "0123456789abcdef"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's environment out of the settings under test."""
    monkeypatch.delenv("ENCRYPTION_TOKEN", raising=False)
    monkeypatch.delenv("encryption_token", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)


@pytest.fixture
def mock_logger():
    """Fixture to create a mock logger for testing."""
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def app_settings(tmp_path):
    """AppSettings with every host path redirected below tmp_path."""
    return AppSettings(
        device={"directory": str(tmp_path / "device.d")},
        ssh={
            "ssh_dir": str(tmp_path / "root_ssh"),
            "sshd_config_path": str(tmp_path / "etc_ssh" / "sshd_config"),
            "host_key_dir": str(tmp_path / "etc_ssh"),
        },
        service={
            "helper_script_path": str(tmp_path / "bin" / "run_device_manager.sh"),
            "systemd_unit_dir": str(tmp_path / "systemd"),
            "openrc_init_dir": str(tmp_path / "init.d"),
        },
        network={
            "nm_conf_path": str(tmp_path / "nm" / "conf.d" / "90-device-manager.conf"),
            "backup_root": str(tmp_path / "backups"),
            "config_paths": [str(tmp_path / "etc_network")],
            "settle_seconds": 0,
            "probe_interval": 0,
        },
        container={"start_retry_delay": 0},
    )


@pytest.fixture
def debian_profile():
    return HostProfile(
        architecture=Architecture.AMD64,
        family=HostFamily.DEBIAN,
        package_manager_kind="apt",
        init_system_kind="systemd",
    )


@pytest.fixture
def alpine_profile():
    return HostProfile(
        architecture=Architecture.ARM64,
        family=HostFamily.ALPINE,
        package_manager_kind="apk",
        init_system_kind="openrc",
    )


@pytest.fixture
def fake_init(app_settings):
    return FakeInitSystem(app_settings)


@pytest.fixture
def fake_package_manager(app_settings):
    return FakePackageManager(app_settings)


@pytest.fixture
def fake_runtime():
    return FakeRuntime()


@pytest.fixture
def sleeps():
    """A fake clock: records requested sleeps instead of sleeping."""
    recorded: List[float] = []
    return recorded


@pytest.fixture
def make_context(app_settings, fake_init, fake_package_manager, fake_runtime, sleeps, mock_logger):
    def _make(profile, **overrides):
        return HostContext(
            app_settings,
            profile,
            mock_logger,
            package_manager=overrides.get("package_manager", fake_package_manager),
            init_system=overrides.get("init_system", fake_init),
            container_runtime=overrides.get("container_runtime", fake_runtime),
            sleep=sleeps.append,
        )

    return _make


@pytest.fixture
def make_init(app_settings):
    """Factory for FakeInitSystem with a given kind and running services."""

    def _make(kind="systemd", active=None, fail_on=None):
        return FakeInitSystem(app_settings, kind=kind, active=active, fail_on=fail_on)

    return _make
