"""
Orchestrator for the bootstrap components.

This module provides the ComponentOrchestrator class, which is responsible
for importing the component modules, resolving their order, and running each
of them as a logged step. The first fatal error aborts the run.
"""

import importlib
import logging
import pkgutil
from typing import Any, Dict, List, Optional, Type

from components.base_component import BaseComponent
from components.context import HostContext
from components.registry import ComponentRegistry
from provision.config_models import AppSettings
from provision.errors import BootstrapError
from provision.step_executor import execute_step

DEFAULT_COMPONENTS: List[str] = [
    "prerequisites",
    "network",
    "ssh",
    "container",
    "service",
]


class ComponentOrchestrator:
    """
    Runs registered components in dependency order.

    Component instances are created once per orchestrator and reused, so the
    result of one component can be read by the next through `components`.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        context: HostContext,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            app_settings: The application settings.
            context: Host profile and collaborators for this run.
            logger: Optional logger instance. If not provided, a new logger will be created.
        """
        self.app_settings = app_settings
        self.context = context
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.components: Dict[str, BaseComponent] = {}
        self.results: Dict[str, Any] = {}
        self.warnings: List[BootstrapError] = []

        self._import_component_modules()

    def _import_component_modules(self) -> None:
        """
        Import every module below the components package so that all
        component classes are registered with the ComponentRegistry.
        """
        import components

        for module_info in pkgutil.walk_packages(
            components.__path__, prefix="components."
        ):
            importlib.import_module(module_info.name)
            self.logger.debug(f"Imported component module: {module_info.name}")

    def get_available_components(self) -> Dict[str, Type[BaseComponent]]:
        return ComponentRegistry.get_all_components()

    def resolve_dependencies(self, component_names: List[str]) -> List[str]:
        return ComponentRegistry.resolve_dependencies(component_names)

    def get_component(self, name: str) -> BaseComponent:
        """The single instance of component `name` for this run."""
        if name not in self.components:
            component_class = ComponentRegistry.get_component(name)
            self.components[name] = component_class(
                self.app_settings, self.context, self.logger
            )
        return self.components[name]

    def run(self, component_names: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Run the requested components and everything they depend on.

        Returns:
            Mapping of component name to the value its ensure() returned.
            Components that do not apply to this run map to None.

        Raises:
            BootstrapError: the first fatal failure, tagged with the step name.
        """
        resolved_names = self.resolve_dependencies(
            component_names or DEFAULT_COMPONENTS
        )
        self.logger.info(f"Running components in order: {', '.join(resolved_names)}")

        for name in resolved_names:
            component = self.get_component(name)
            if not component.should_run():
                self.logger.info(f"Skipping component '{name}' for this host.")
                self.results[name] = None
                continue

            self.results[name] = execute_step(
                name,
                component.get_description(),
                component.ensure,
                self.app_settings,
                self.logger,
            )

            for warning in component.warnings:
                if warning.step is None:
                    warning.step = name
                self.logger.warning(warning.describe())
                self.warnings.append(warning)

        self.logger.info("All components completed")
        return self.results

    def status(self, component_names: Optional[List[str]] = None) -> Dict[str, bool]:
        """Report which components already hold, without changing anything."""
        resolved_names = self.resolve_dependencies(
            component_names or DEFAULT_COMPONENTS
        )
        return {
            name: self.get_component(name).is_satisfied()
            for name in resolved_names
        }
