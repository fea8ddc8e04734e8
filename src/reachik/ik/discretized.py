"""
IK solver sampling the free rotation about the target's Z axis.

Tool poses such as drilling or deposition leave the spin about the approach
axis unconstrained. Instead of one IK attempt, the target is rotated about its
local Z axis in steps of ``dt`` and every sample is solved independently from
the same seed.
"""

import math
from typing import Mapping, Sequence

from compas.geometry import Frame

from reachik.core.geometry import rotate_about_local_z
from reachik.core.logging import get_logger, solver_context
from reachik.ik.base import IKSolver
from reachik.ik.solver import CollisionAwareIKSolver

logger = get_logger(__name__)

# Step used in place of a zero angle, where the number of samples is unbounded
ZERO_ANGLE_FALLBACK = math.radians(1.0)
CLAMP_TOLERANCE = 1.0e-6


def clamp_discretization_angle(angle: float) -> float:
    """
    Clamp a raw discretization angle into ``(0, pi]``.

    The sign is dropped first. Magnitudes already inside ``(0, pi]`` are
    returned unchanged; larger ones become ``pi``. A magnitude within
    ``CLAMP_TOLERANCE`` of zero is replaced by ``ZERO_ANGLE_FALLBACK``. A
    warning is logged when the magnitude had to change by more than
    ``CLAMP_TOLERANCE``.
    """
    dt = abs(angle)
    if dt <= CLAMP_TOLERANCE:
        clamped = ZERO_ANGLE_FALLBACK
    else:
        clamped = min(dt, math.pi)

    if abs(dt - clamped) > CLAMP_TOLERANCE:
        logger.warning(
            "discretization_angle_clamped",
            requested=angle,
            clamped=clamped,
            upper=math.pi,
        )
    return clamped


def discretization_count(dt: float) -> int:
    """Number of samples ``floor(2*pi / dt)``."""
    # Tolerate rounding so that e.g. pi/3 gives 6, not 5
    return int(math.floor(2.0 * math.pi / dt + 1e-9))


class DiscretizedIKSolver(IKSolver):
    """
    Solves every rotation of the target about its local Z axis.

    Holds a :class:`CollisionAwareIKSolver` and calls its single-attempt solve
    once per sample. Solutions are returned in sample order, one per
    successful sample, without deduplication.
    """

    def __init__(self, solver: CollisionAwareIKSolver, dt: float):
        """
        Args:
            solver: Base solver used for each sample
            dt: Angular step in radians, within (0, pi]

        Raises:
            ValueError: If dt lies outside (0, pi]
        """
        if not 0.0 < dt <= math.pi:
            raise ValueError(f"Discretization angle must be in (0, pi], got {dt}")

        self.solver = solver
        self.dt = dt
        self.n_discretizations = discretization_count(dt)

    def discretized_targets(self, target: Frame) -> list[Frame]:
        """Target rotated by ``i * dt`` about its Z axis, for each sample ``i``."""
        return [
            rotate_about_local_z(target, i * self.dt)
            for i in range(self.n_discretizations)
        ]

    def solve_ik(self, target: Frame, seed: Mapping[str, float]) -> list[list[float]]:
        solutions = []
        for i, discretized_target in enumerate(self.discretized_targets(target)):
            with solver_context(sample=i):
                result = self.solver.solve_ik(discretized_target, seed)
            if result:
                solutions.append(result[0])

        logger.debug(
            "discretized_ik_solved",
            samples=self.n_discretizations,
            solutions=len(solutions),
        )
        return solutions

    def get_joint_names(self) -> list[str]:
        return self.solver.get_joint_names()

    def get_kinematic_base_frame(self) -> str:
        return self.solver.get_kinematic_base_frame()

    def add_collision_mesh(self, collision_mesh_filename: str, collision_mesh_frame: str) -> None:
        self.solver.add_collision_mesh(collision_mesh_filename, collision_mesh_frame)

    def set_touch_links(self, touch_links: Sequence[str]) -> None:
        self.solver.set_touch_links(touch_links)

    @property
    def distance_threshold(self) -> float:
        return self.solver.distance_threshold

    def close(self) -> None:
        self.solver.close()
