"""
Custom exceptions for reachik.

All reachik exceptions inherit from ReachIKError for easy catching.
Anything raised while a solver is being built or configured derives from
ConstructionError. "No IK solution" is never an exception: solvers return an
empty list instead.
"""

from typing import Any


class ReachIKError(Exception):
    """Base exception for all reachik errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConstructionError(ReachIKError):
    """Raised when a solver cannot be built or configured."""

    pass


class ConfigurationError(ConstructionError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str,
        key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.key = key


class RobotError(ConstructionError):
    """Raised when the robot model or a planning group is unavailable."""

    pass


class GeometryError(ConstructionError):
    """Raised when collision geometry cannot be loaded or interpreted."""

    pass


class SceneError(ConstructionError):
    """Raised when the collision scene rejects an update."""

    pass


class PluginError(ReachIKError):
    """Raised when a solver factory cannot be found or registered."""

    def __init__(
        self,
        message: str,
        plugin_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.plugin_name = plugin_name
