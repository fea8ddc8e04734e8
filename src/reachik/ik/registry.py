"""
Registry of IK solver factories.

Study configurations select a solver kind by name; the registry maps that
name to a factory.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from reachik.core.config import load_yaml
from reachik.core.exceptions import ConfigurationError, PluginError
from reachik.core.robot import RobotDescription
from reachik.ik.base import IKSolver
from reachik.ik.factory import (
    CollisionAwareIKSolverFactory,
    DiscretizedIKSolverFactory,
    IKSolverFactory,
    resolve_relative_paths,
)

STUDY_SECTION = "ik_solver"


@dataclass
class FactoryInfo:
    """Information about a registered factory."""

    name: str
    description: str
    factory_class: type[IKSolverFactory]
    module_path: str


@dataclass
class SolverRegistry:
    """
    Registry for solver factories.

    Example:
        >>> registry = SolverRegistry.default()
        >>> solver = registry.create("DiscretizedIKSolver", options)
    """

    _factories: dict[str, FactoryInfo] = field(default_factory=dict, init=False)

    @classmethod
    def default(cls) -> "SolverRegistry":
        """Registry holding the built-in factories."""
        registry = cls()
        registry.register(CollisionAwareIKSolverFactory)
        registry.register(DiscretizedIKSolverFactory)
        return registry

    def register(self, factory_class: type[IKSolverFactory]) -> None:
        """
        Register a factory class.

        Raises:
            PluginError: If the class is not a factory or the name is taken
        """
        if not (isinstance(factory_class, type) and issubclass(factory_class, IKSolverFactory)):
            raise PluginError(
                "Invalid solver factory",
                plugin_name=getattr(factory_class, "name", "unknown"),
                details={"reason": "Must inherit from IKSolverFactory"},
            )

        name = factory_class.name
        if name in self._factories:
            raise PluginError(f"Solver factory already registered: {name}", plugin_name=name)

        self._factories[name] = FactoryInfo(
            name=name,
            description=factory_class.description,
            factory_class=factory_class,
            module_path=f"{factory_class.__module__}.{factory_class.__name__}",
        )

    def get(self, name: str) -> FactoryInfo:
        """
        Raises:
            PluginError: If no factory has this name
        """
        if name not in self._factories:
            raise PluginError(
                f"Solver factory not found: {name}",
                plugin_name=name,
                details={"available": self.list_names()},
            )
        return self._factories[name]

    def create(
        self,
        name: str,
        config: Mapping[str, Any],
        robot: Optional[RobotDescription] = None,
    ) -> IKSolver:
        """Build a solver with the named factory."""
        factory = self.get(name).factory_class()
        return factory.create(config, robot=robot)

    def list_names(self) -> list[str]:
        return list(self._factories)

    def list_factories(self) -> list[FactoryInfo]:
        return list(self._factories.values())


def load_solver(
    study_path: str | Path,
    registry: Optional[SolverRegistry] = None,
    robot: Optional[RobotDescription] = None,
) -> IKSolver:
    """
    Build the solver described by the ``ik_solver`` section of a study file.

    The section's ``name`` selects the factory; the remaining keys are the
    factory's options. File paths are resolved against the study file's
    directory.

    Raises:
        ConfigurationError: If the section or its name is missing
        ConstructionError: If the solver cannot be built
    """
    study_path = Path(study_path)
    data = load_yaml(study_path)

    section = data.get(STUDY_SECTION)
    if not isinstance(section, dict):
        raise ConfigurationError(
            f"Study configuration has no '{STUDY_SECTION}' section: {study_path}",
            key=STUDY_SECTION,
        )

    options = dict(section)
    name = options.pop("name", None)
    if not name:
        raise ConfigurationError(
            f"'{STUDY_SECTION}' section has no solver name: {study_path}",
            key=f"{STUDY_SECTION}.name",
        )

    registry = registry or SolverRegistry.default()
    return registry.create(name, resolve_relative_paths(options, study_path.parent), robot=robot)
