# provision/errors.py
# -*- coding: utf-8 -*-
"""
Error taxonomy for the bootstrap.

Fatal kinds abort the whole run; the orchestrator reports the kind together
with the step that raised it. A degraded network transition is not an
exception at all: it is reported through the transition result and logged
as a warning.
"""

from enum import Enum
from typing import Dict, Mapping, Optional


class ErrorKind(str, Enum):
    """Stable identifiers for the failure classes surfaced to the operator."""

    PRECONDITION = "Precondition"
    INSTALL = "InstallError"
    SUPERVISION = "SupervisionError"
    IO = "IoError"
    NETWORK_DEGRADED = "NetworkTransitionDegraded"
    UNEXPECTED = "UnexpectedError"


class BootstrapError(Exception):
    """Base error carrying the kind, the failing step and an optional hint."""

    kind: ErrorKind = ErrorKind.UNEXPECTED
    fatal: bool = True

    def __init__(
        self,
        message: str,
        *,
        step: Optional[str] = None,
        hint: Optional[str] = None,
        context: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.step = step
        self.hint = hint
        self.context: Dict[str, str] = dict(context or {})

    def __str__(self) -> str:
        parts = [self.message]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        for key, value in self.context.items():
            if value:
                parts.append(f"  {key}: {value}")
        return "\n".join(parts)

    def describe(self) -> str:
        """One line summary: kind, step and message."""
        where = f" in step '{self.step}'" if self.step else ""
        return f"{self.kind.value}{where}: {self.message}"


class PreconditionError(BootstrapError):
    """Unsupported architecture or host, missing privilege, missing token."""

    kind = ErrorKind.PRECONDITION


class InstallError(BootstrapError):
    """A package could not be fetched or installed."""

    kind = ErrorKind.INSTALL


class SupervisionError(BootstrapError):
    """The image could not be pulled or the container never started."""

    kind = ErrorKind.SUPERVISION


class BootstrapIOError(BootstrapError):
    """A filesystem or configuration write failed."""

    kind = ErrorKind.IO


class NetworkTransitionDegraded(BootstrapError):
    """NetworkManager did not adopt the devices or the probe failed."""

    kind = ErrorKind.NETWORK_DEGRADED
    fatal = False
