"""
Collision-aware IK solver.

Wraps a numerical IK routine with a validity check that rejects solutions in
collision or closer than a distance threshold to an obstacle.
"""

from typing import Mapping, Optional, Sequence

from compas.geometry import Frame

from reachik.core.exceptions import SceneError
from reachik.core.geometry import create_collision_object
from reachik.core.logging import get_logger, solver_context
from reachik.core.robot import KinematicChain, RobotDescription, RobotState, transcribe_seed
from reachik.ik.base import IKSolver
from reachik.ik.validity import ValidityPredicate
from reachik.motion.collision import (
    DEFAULT_DISTANCE_SEARCH_RADIUS,
    CollisionScene,
    PyBulletCollisionScene,
)
from reachik.motion.kinematics import IKRoutine, ScipyIKRoutine

logger = get_logger(__name__)


class CollisionAwareIKSolver(IKSolver):
    """
    Single-attempt IK solver filtered by collision and clearance checks.

    The solver exclusively owns its collision scene. The scene is only changed
    through :meth:`add_collision_mesh` and :meth:`set_touch_links`, which must
    not run concurrently with :meth:`solve_ik`.

    Example:
        >>> robot = RobotLoader.load("robots/planar.yaml")
        >>> with CollisionAwareIKSolver(robot, "manipulator", 0.01) as solver:
        ...     solutions = solver.solve_ik(target, {"joint_1": 0.0})
    """

    COLLISION_OBJECT_NAME = "reach_object"

    def __init__(
        self,
        robot: RobotDescription,
        planning_group: str,
        distance_threshold: float,
        scene: Optional[CollisionScene] = None,
        ik_routine: Optional[IKRoutine] = None,
    ):
        """
        Initialize the solver.

        Args:
            robot: Robot description
            planning_group: Name of the planning group to solve for
            distance_threshold: Minimum clearance from obstacles (metres)
            scene: Collision scene (default: a new PyBullet scene)
            ik_routine: Numerical IK routine (default: scipy-based)

        Raises:
            RobotError: If the planning group does not exist
            SceneError: If the collision scene cannot be created
        """
        self.robot = robot
        self.chain: KinematicChain = robot.get_kinematic_chain(planning_group)
        self.distance_threshold = distance_threshold

        if scene is None:
            scene = PyBulletCollisionScene(
                robot,
                distance_search_radius=max(DEFAULT_DISTANCE_SEARCH_RADIUS, distance_threshold),
            )
        self._scene = scene
        self._ik = ik_routine or ScipyIKRoutine(robot)
        self._is_valid = ValidityPredicate(self._scene, distance_threshold)

        logger.debug(
            "ik_solver_created",
            planning_group=planning_group,
            joints=self.chain.n_joints,
            distance_threshold=distance_threshold,
        )

    @property
    def collision_object_name(self) -> str:
        return self.COLLISION_OBJECT_NAME

    def solve_ik(self, target: Frame, seed: Mapping[str, float]) -> list[list[float]]:
        """
        Run one IK attempt from the seed.

        Returns:
            A one-element list with the accepted configuration, or an empty
            list if no valid solution was found
        """
        state = RobotState(self.robot)
        joint_names = list(self.chain.joint_names)
        state.set_joint_group_positions(
            self.chain,
            transcribe_seed(seed, joint_names, state.joint_group_positions(self.chain)),
        )

        def is_valid(candidate: Sequence[float]) -> bool:
            return self._is_valid(state, self.chain, candidate)

        with solver_context(planning_group=self.chain.name):
            solution = self._ik.attempt(target, state, self.chain, is_valid)
            if solution is None:
                logger.debug("ik_no_solution")
                return []

        return [list(solution)]

    def get_joint_names(self) -> list[str]:
        return list(self.chain.joint_names)

    def get_kinematic_base_frame(self) -> str:
        return self.chain.base_frame

    def add_collision_mesh(self, collision_mesh_filename: str, collision_mesh_frame: str) -> None:
        """
        Insert or replace the solver's obstacle.

        Args:
            collision_mesh_filename: Mesh file of the obstacle
            collision_mesh_frame: Link the mesh coordinates are expressed in

        Raises:
            GeometryError: If the mesh cannot be read
            SceneError: If the scene rejects the object
        """
        obj = create_collision_object(
            collision_mesh_filename, collision_mesh_frame, self.COLLISION_OBJECT_NAME
        )
        if not self._scene.process_collision_object(obj):
            raise SceneError(
                "Failed to add collision mesh to planning scene",
                details={
                    "collision_mesh_filename": collision_mesh_filename,
                    "collision_mesh_frame": collision_mesh_frame,
                },
            )
        logger.info(
            "collision_mesh_added",
            filename=collision_mesh_filename,
            frame=collision_mesh_frame,
        )

    def set_touch_links(self, touch_links: Sequence[str]) -> None:
        """Allow the obstacle to touch the given links."""
        self._scene.allowed_collision_matrix.set_entry(
            self.COLLISION_OBJECT_NAME, list(touch_links), True
        )
        logger.info("touch_links_set", touch_links=list(touch_links))

    def close(self) -> None:
        self._scene.close()
