# tests/components/test_registry.py
import pytest

import components.docker.container_supervisor  # noqa: F401
import components.network.network_transition  # noqa: F401
import components.prerequisites.package_resolver  # noqa: F401
import components.service.unit_generator  # noqa: F401
import components.ssh.credential_provisioner  # noqa: F401
from components.base_component import BaseComponent
from components.registry import ComponentRegistry


class _Noop(BaseComponent):
    def ensure(self):
        return None

    def is_satisfied(self):
        return True


@pytest.fixture
def isolated_registry(monkeypatch):
    monkeypatch.setattr(ComponentRegistry, "_registry", {})
    return ComponentRegistry


def _register(registry, name, dependencies):
    cls = type(f"Component_{name}", (_Noop,), {})
    return registry.register(name, {"dependencies": dependencies, "description": name})(cls)


def test_bootstrap_components_resolve_in_order():
    assert ComponentRegistry.resolve_dependencies(["service"]) == [
        "prerequisites",
        "network",
        "ssh",
        "container",
        "service",
    ]


def test_resolve_dependencies_deduplicates(isolated_registry):
    _register(isolated_registry, "a", [])
    _register(isolated_registry, "b", ["a"])
    _register(isolated_registry, "c", ["a", "b"])

    assert isolated_registry.resolve_dependencies(["c", "b", "a"]) == ["a", "b", "c"]


def test_cycle_detected(isolated_registry):
    _register(isolated_registry, "a", ["b"])
    _register(isolated_registry, "b", ["a"])

    with pytest.raises(ValueError, match="Circular dependency"):
        isolated_registry.resolve_dependencies(["a"])


def test_unknown_component(isolated_registry):
    _register(isolated_registry, "a", ["missing"])

    with pytest.raises(KeyError):
        isolated_registry.resolve_dependencies(["a"])


def test_duplicate_name_rejected(isolated_registry):
    _register(isolated_registry, "a", [])

    with pytest.raises(ValueError, match="already registered"):
        _register(isolated_registry, "a", [])
