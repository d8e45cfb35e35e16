"""
Base component class for all bootstrap components.

This module provides the base class that every component of the bootstrap
must inherit from. A component reconciles one part of the host towards its
desired state using a check-then-act discipline, so running it again on a
host that is already configured only performs checks.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Set

from components.context import HostContext
from provision.config_models import AppSettings
from provision.errors import BootstrapError


class BaseComponent(ABC):
    """
    Base class for all bootstrap components.

    Subclasses implement ensure() and is_satisfied(). Fatal failures are
    raised as typed BootstrapError subclasses; non-fatal findings are
    appended to `warnings` for the orchestrator to report.
    """

    # Class-level metadata that can be overridden by subclasses or set by the registry decorator
    metadata: Dict[str, Any] = {
        "dependencies": [],  # Components that must run before this one
        "description": "",
    }

    def __init__(
        self,
        app_settings: AppSettings,
        context: HostContext,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the component.

        Args:
            app_settings: The application settings.
            context: Host profile and collaborators for this run.
            logger: Optional logger instance. If not provided, a new logger will be created.
        """
        self.app_settings = app_settings
        self.context = context
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.warnings: List[BootstrapError] = []

    @abstractmethod
    def ensure(self) -> Any:
        """
        Reconcile the host so this component's state holds.

        Returns:
            A component specific result.

        Raises:
            BootstrapError: on a fatal failure.
        """

    @abstractmethod
    def is_satisfied(self) -> bool:
        """
        Check, without side effects, whether the desired state already holds.
        """

    def should_run(self) -> bool:
        """Whether this component applies to the current run at all."""
        return True

    def get_dependencies(self) -> Set[str]:
        return set(self.metadata.get("dependencies", []))

    def get_description(self) -> str:
        return str(self.metadata.get("description", ""))
