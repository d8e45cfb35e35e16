# components/registry.py
# -*- coding: utf-8 -*-
"""
Name-to-class registry of bootstrap components.

Each component module registers its class with a decorator when imported and
names the components that must hold before it runs. The run order is derived
from those names only, never from import order.
"""

from typing import Any, Dict, List, Optional, Set, Type

from components.base_component import BaseComponent


class ComponentRegistry:
    _registry: Dict[str, Type[BaseComponent]] = {}

    @classmethod
    def register(cls, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Class decorator: `@ComponentRegistry.register("ssh", {"dependencies": ["network"]})`.

        Registering the same class again under its name is a no-op, which
        happens when a module is re-imported. A different class under a taken
        name is a ValueError.
        """

        def decorator(component_class: Type[BaseComponent]) -> Type[BaseComponent]:
            existing = cls._registry.get(name)
            if existing is not None and existing is not component_class:
                raise ValueError(
                    f"Component name '{name}' already registered by {existing.__name__}"
                )
            component_class.metadata = dict(metadata or {})
            cls._registry[name] = component_class
            return component_class

        return decorator

    @classmethod
    def get_component(cls, name: str) -> Type[BaseComponent]:
        try:
            return cls._registry[name]
        except KeyError:
            raise KeyError(f"No component registered with name '{name}'") from None

    @classmethod
    def get_all_components(cls) -> Dict[str, Type[BaseComponent]]:
        return dict(cls._registry)

    @classmethod
    def get_component_dependencies(cls, name: str) -> Set[str]:
        return set(cls.get_component(name).metadata.get("dependencies", []))

    @classmethod
    def resolve_dependencies(cls, components: List[str]) -> List[str]:
        """
        Order `components` and everything they depend on, dependencies first.

        Each name appears once. Siblings are visited in sorted order so the
        result is stable.

        Raises:
            KeyError: a component or dependency is not registered.
            ValueError: the dependencies form a cycle; the message shows it.
        """
        ordered: List[str] = []
        done: Set[str] = set()

        def visit(name: str, chain: List[str]) -> None:
            if name in done:
                return
            if name in chain:
                cycle = " -> ".join(chain[chain.index(name):] + [name])
                raise ValueError(f"Circular dependency detected: {cycle}")
            for dependency in sorted(cls.get_component_dependencies(name)):
                visit(dependency, chain + [name])
            done.add(name)
            ordered.append(name)

        for name in components:
            visit(name, [])
        return ordered
