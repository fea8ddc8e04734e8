"""
Factories building IK solvers from declarative configuration.

Both factories accept a mapping with the keys below and return a ready-to-use
solver::

    planning_group: manipulator        # required
    distance_threshold: 0.01           # required, metres
    robot_description: robots/arm.yaml # unless a RobotDescription is passed
    collision_mesh_filename: part.stl  # optional
    collision_mesh_frame: base_link    # optional, defaults to the base frame
    touch_links: [tool0]               # optional
    discretization_angle: 0.5236       # discretized solver only
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Mapping, Optional

from reachik.core.config import (
    DiscretizedIKSolverConfig,
    IKSolverConfig,
    validate_config,
)
from reachik.core.exceptions import RobotError
from reachik.core.logging import get_logger
from reachik.core.robot import RobotDescription, RobotLoader
from reachik.ik.base import IKSolver
from reachik.ik.discretized import DiscretizedIKSolver, clamp_discretization_angle
from reachik.ik.solver import CollisionAwareIKSolver
from reachik.motion.kinematics import ScipyIKRoutine

logger = get_logger(__name__)


class IKSolverFactory(ABC):
    """
    Abstract base class for solver factories.

    Subclasses declare a registry ``name`` and implement :meth:`create`.
    """

    name: str = "base_factory"
    description: str = ""

    @abstractmethod
    def create(
        self,
        config: Mapping[str, Any],
        robot: Optional[RobotDescription] = None,
    ) -> IKSolver:
        """
        Build a solver.

        Args:
            config: Solver options
            robot: Preloaded robot description; loaded from
                ``robot_description`` when omitted

        Raises:
            ConstructionError: If the solver cannot be built
        """
        pass


def _resolve_robot(options: IKSolverConfig, robot: Optional[RobotDescription]) -> RobotDescription:
    if robot is not None:
        return robot
    if not options.robot_description:
        raise RobotError(
            "Failed to initialize robot model pointer",
            details={"reason": "no 'robot_description' given"},
        )
    return RobotLoader.get_shared(options.robot_description)


def _build_solver(options: IKSolverConfig, robot: RobotDescription) -> CollisionAwareIKSolver:
    return CollisionAwareIKSolver(
        robot,
        options.planning_group,
        options.distance_threshold,
        ik_routine=ScipyIKRoutine(robot, options.ik),
    )


def _configure_scene(solver: IKSolver, options: IKSolverConfig) -> None:
    """Attach the optional collision mesh and touch links."""
    if options.collision_mesh_filename:
        frame = options.collision_mesh_frame or solver.get_kinematic_base_frame()
        try:
            solver.add_collision_mesh(options.collision_mesh_filename, frame)
        except Exception:
            solver.close()
            raise

    if options.touch_links:
        solver.set_touch_links(options.touch_links)


class CollisionAwareIKSolverFactory(IKSolverFactory):
    """Builds a :class:`CollisionAwareIKSolver`."""

    name = "CollisionAwareIKSolver"
    description = "Single IK attempt filtered by collision and clearance checks"

    def create(
        self,
        config: Mapping[str, Any],
        robot: Optional[RobotDescription] = None,
    ) -> IKSolver:
        options = validate_config(IKSolverConfig, config)
        robot = _resolve_robot(options, robot)

        solver = _build_solver(options, robot)
        _configure_scene(solver, options)

        logger.info(
            "ik_solver_ready",
            solver=self.name,
            planning_group=options.planning_group,
            distance_threshold=options.distance_threshold,
        )
        return solver


class DiscretizedIKSolverFactory(IKSolverFactory):
    """Builds a :class:`DiscretizedIKSolver` around a collision-aware solver."""

    name = "DiscretizedIKSolver"
    description = "Samples the rotation about the target Z axis and solves each sample"

    def create(
        self,
        config: Mapping[str, Any],
        robot: Optional[RobotDescription] = None,
    ) -> IKSolver:
        options = validate_config(DiscretizedIKSolverConfig, config)
        robot = _resolve_robot(options, robot)

        dt = clamp_discretization_angle(options.discretization_angle)
        solver = DiscretizedIKSolver(_build_solver(options, robot), dt)
        _configure_scene(solver, options)

        logger.info(
            "ik_solver_ready",
            solver=self.name,
            planning_group=options.planning_group,
            distance_threshold=options.distance_threshold,
            discretization_angle=dt,
            samples=solver.n_discretizations,
        )
        return solver


def resolve_relative_paths(config: Mapping[str, Any], base_dir: Path) -> dict[str, Any]:
    """Make file options of a study section relative to its file's directory."""
    resolved = dict(config)
    for key in ("robot_description", "collision_mesh_filename"):
        value = resolved.get(key)
        if isinstance(value, str) and value and not Path(value).is_absolute() \
                and not value.startswith("file://"):
            resolved[key] = str(base_dir / value)
    return resolved
