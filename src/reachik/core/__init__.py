"""
Core module - Configuration, robot description, geometry and shared errors.
"""

from reachik.core.config import (
    DiscretizedIKSolverConfig,
    IKRoutineConfig,
    IKSolverConfig,
    PlanningGroupConfig,
    RobotConfig,
)
from reachik.core.exceptions import (
    ConfigurationError,
    ConstructionError,
    GeometryError,
    PluginError,
    ReachIKError,
    RobotError,
    SceneError,
)
from reachik.core.geometry import CollisionObject, GeometryLoader, create_collision_object
from reachik.core.robot import KinematicChain, RobotDescription, RobotLoader, RobotState

__all__ = [
    # Config
    "RobotConfig",
    "PlanningGroupConfig",
    "IKSolverConfig",
    "DiscretizedIKSolverConfig",
    "IKRoutineConfig",
    # Exceptions
    "ReachIKError",
    "ConstructionError",
    "ConfigurationError",
    "RobotError",
    "GeometryError",
    "SceneError",
    "PluginError",
    # Geometry
    "CollisionObject",
    "GeometryLoader",
    "create_collision_object",
    # Robot
    "KinematicChain",
    "RobotDescription",
    "RobotLoader",
    "RobotState",
]
