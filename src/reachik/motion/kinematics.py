"""
Numerical inverse kinematics for robotic manipulators.

This module provides an IK routine using scipy's bounded optimizers on top of
the forward kinematics from compas_robots. Every converged candidate is passed
through a caller-supplied acceptance callback; rejected candidates trigger a
restart from a new random seed.
"""

from typing import Callable, List, Optional, Protocol, Sequence

import numpy as np
from compas.geometry import Frame
from scipy.optimize import minimize

from reachik.core.config import IKRoutineConfig
from reachik.core.exceptions import RobotError
from reachik.core.geometry import frame_to_matrix
from reachik.core.robot import KinematicChain, RobotDescription, RobotState, clamp_to_limits

IsValidCallback = Callable[[Sequence[float]], bool]


class IKRoutine(Protocol):
    """Numerical IK contract: one attempt, filtered by an acceptance callback."""

    def attempt(
        self,
        target: Frame,
        state: RobotState,
        chain: KinematicChain,
        is_valid: IsValidCallback,
    ) -> Optional[List[float]]: ...


def orientation_error(rotation_target: np.ndarray, rotation_current: np.ndarray) -> float:
    """Angle of the rotation between two 3x3 rotation matrices."""
    rotation_error = rotation_target.T @ rotation_current
    return float(np.arccos(np.clip((np.trace(rotation_error) - 1) / 2, -1, 1)))


class ScipyIKRoutine:
    """
    Inverse kinematics routine using numerical optimization.

    The first attempt starts from the seed held in the working state. Further
    attempts start from uniformly sampled configurations drawn from a
    generator seeded with ``random_seed``, so repeated calls with the same
    inputs return the same answer.
    """

    def __init__(
        self,
        robot: RobotDescription,
        config: Optional[IKRoutineConfig] = None,
        method: str = "SLSQP",
    ):
        """
        Initialize IK routine.

        Args:
            robot: Robot description providing forward kinematics
            config: Tolerances, iteration and restart limits
            method: scipy.optimize.minimize method supporting bounds
        """
        self.robot = robot
        self.config = config or IKRoutineConfig()
        self.method = method

    def _tip_matrix(
        self,
        positions: dict,
        chain: KinematicChain,
        joint_values: Sequence[float],
    ) -> np.ndarray:
        for name, value in zip(chain.joint_names, joint_values):
            positions[name] = float(value)
        tip = frame_to_matrix(self.robot.forward_kinematics(positions, chain.tip_link))
        if chain.base_frame == self.robot.root_link:
            return tip
        base = frame_to_matrix(self.robot.forward_kinematics(positions, chain.base_frame))
        return np.linalg.inv(base) @ tip

    def pose_error(
        self,
        target: Frame,
        state: RobotState,
        chain: KinematicChain,
        joint_values: Sequence[float],
    ) -> tuple[float, float]:
        """
        Position and orientation error of a candidate.

        Returns:
            (position error in metres, orientation error in radians)
        """
        target_matrix = frame_to_matrix(target)
        current = self._tip_matrix(state.positions, chain, joint_values)
        pos_error = float(np.linalg.norm(target_matrix[:3, 3] - current[:3, 3]))
        orient_error = orientation_error(target_matrix[:3, :3], current[:3, :3])
        return pos_error, orient_error

    def attempt(
        self,
        target: Frame,
        state: RobotState,
        chain: KinematicChain,
        is_valid: IsValidCallback,
    ) -> Optional[List[float]]:
        """
        Solve inverse kinematics for a target frame of the chain's tip link.

        Args:
            target: Desired tip pose, expressed in the chain's base frame
            state: Working state; its chain values are the seed
            chain: Kinematic chain to solve for
            is_valid: Acceptance callback for converged candidates

        Returns:
            Joint values in chain order if an accepted solution was found,
            None otherwise
        """
        target_matrix = frame_to_matrix(target)
        target_pos = target_matrix[:3, 3]
        target_rot = target_matrix[:3, :3]
        positions = state.positions
        bounds = list(chain.joint_limits)
        weight = self.config.orientation_weight

        def objective(joint_values):
            try:
                current = self._tip_matrix(positions, chain, joint_values)
            except Exception:
                # FK failed, return large error
                return 1e6
            pos_error = np.sum((target_pos - current[:3, 3]) ** 2)
            orient_error = orientation_error(target_rot, current[:3, :3])
            return pos_error + weight * orient_error**2

        rng = np.random.default_rng(self.config.random_seed)
        x0 = clamp_to_limits(state.joint_group_positions(chain), chain)

        for _ in range(self.config.max_restarts + 1):
            result = minimize(
                objective,
                x0,
                method=self.method,
                bounds=bounds,
                tol=1e-12,
                options={"maxiter": self.config.max_iterations},
            )
            candidate = clamp_to_limits(result.x, chain).tolist()

            try:
                pos_error, orient_error = self.pose_error(target, state, chain, candidate)
            except RobotError:
                pos_error, orient_error = np.inf, np.inf
            if (
                pos_error < self.config.position_tolerance
                and orient_error < self.config.orientation_tolerance
                and is_valid(candidate)
            ):
                return candidate

            # Random restart within joint limits
            x0 = np.array([rng.uniform(lower, upper) for lower, upper in bounds])

        return None
