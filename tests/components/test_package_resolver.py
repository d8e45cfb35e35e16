# tests/components/test_package_resolver.py
import pytest

from components.prerequisites.package_resolver import (
    COMPOSE_SHIM_CONTENT,
    PackageResolver,
    PrerequisitesComponent,
    dedupe,
    dependency_set_for,
)
from provision import config as static_config
from provision.config_models import HostFamily
from provision.errors import InstallError


def test_dedupe_keeps_first_occurrence():
    assert dedupe(["docker", " gzip ", "", "docker", "gzip"]) == ("docker", "gzip")


def test_dependency_set_for_family_and_extras(app_settings):
    app_settings.packages.extra_packages = ["curl", "gzip"]

    assert dependency_set_for(app_settings, HostFamily.ALPINE) == tuple(
        static_config.FAMILY_PACKAGES["alpine"]
    ) + ("curl",)


def test_dependency_set_override(app_settings):
    app_settings.packages.packages = ["docker"]

    assert dependency_set_for(app_settings, HostFamily.DEBIAN) == ("docker",)


def test_ensure_installed_installs_only_missing(fake_package_manager, app_settings, mock_logger):
    fake_package_manager.installed = {"openssl"}
    resolver = PackageResolver(fake_package_manager, app_settings, mock_logger)

    installed = resolver.ensure_installed(["openssl", "gzip", "docker.io"])

    assert installed == ["gzip", "docker.io"]
    assert fake_package_manager.refreshes == 1
    assert fake_package_manager.install_calls == [["gzip", "docker.io"]]


def test_ensure_installed_is_idempotent(fake_package_manager, app_settings, mock_logger):
    resolver = PackageResolver(fake_package_manager, app_settings, mock_logger)
    resolver.ensure_installed(["gzip", "openssl"])

    assert resolver.ensure_installed(["gzip", "openssl"]) == []
    assert fake_package_manager.refreshes == 1
    assert len(fake_package_manager.install_calls) == 1


def test_satisfied_set_never_refreshes_index(fake_package_manager, app_settings, mock_logger):
    fake_package_manager.installed = {"gzip"}
    resolver = PackageResolver(fake_package_manager, app_settings, mock_logger)

    assert resolver.ensure_installed(["gzip"]) == []
    assert fake_package_manager.refreshes == 0


def test_install_failure_is_fatal(fake_package_manager, app_settings, mock_logger):
    fake_package_manager.broken = {"network-manager"}
    resolver = PackageResolver(fake_package_manager, app_settings, mock_logger)

    with pytest.raises(InstallError, match="network-manager"):
        resolver.ensure_installed(["gzip", "network-manager"])


@pytest.fixture
def prerequisites(app_settings, make_context, alpine_profile, mock_logger, mocker):
    mocker.patch(
        "components.prerequisites.package_resolver.command_exists",
        side_effect=lambda name: name == "docker",
    )
    shim = mocker.patch(
        "components.prerequisites.package_resolver.write_file_if_absent", return_value=True
    )
    component = PrerequisitesComponent(app_settings, make_context(alpine_profile), mock_logger)
    return component, shim


def test_prerequisites_component_installs_and_starts_services(prerequisites, fake_package_manager, fake_init, app_settings):
    component, shim = prerequisites

    installed = component.ensure()

    assert installed == static_config.FAMILY_PACKAGES["alpine"]
    assert fake_init.verbs("enable") == ["docker", "sshd"]
    assert fake_init.verbs("start") == ["docker", "sshd"]
    shim.assert_called_once()
    assert shim.call_args.args[:2] == (static_config.COMPOSE_SHIM_PATH, COMPOSE_SHIM_CONTENT)
    assert component.is_satisfied() is True


def test_prerequisites_component_does_not_restart_running_services(prerequisites, fake_init):
    component, _ = prerequisites
    fake_init.active = {"docker", "sshd"}

    component.ensure()

    assert fake_init.verbs("start") == []


def test_prerequisites_component_service_failure(prerequisites, fake_init):
    component, _ = prerequisites
    fake_init.fail_on = {("enable", "docker")}

    with pytest.raises(InstallError, match="docker"):
        component.ensure()


def test_skip_packages_disables_component(prerequisites, app_settings):
    component, _ = prerequisites
    app_settings.skip_packages = True

    assert component.should_run() is False
