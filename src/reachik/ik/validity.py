"""
Validity check applied to every IK candidate.
"""

from typing import Sequence

from reachik.core.logging import get_logger
from reachik.core.robot import KinematicChain, RobotState
from reachik.motion.collision import CollisionScene

logger = get_logger(__name__)


class ValidityPredicate:
    """
    Accepts a candidate only if it is collision-free and clear of obstacles.

    A candidate is valid when the scene reports no collision for the chain and
    the distance to the nearest obstacle not allowed to touch is at least
    ``distance_threshold``.
    """

    def __init__(self, scene: CollisionScene, distance_threshold: float) -> None:
        self.scene = scene
        self.distance_threshold = distance_threshold

    def __call__(
        self,
        state: RobotState,
        chain: KinematicChain,
        candidate: Sequence[float],
    ) -> bool:
        """
        Pose ``state`` at ``candidate`` and check it.

        Only the chain's joints in ``state`` are modified. An error raised by
        the collision engine rejects the candidate.
        """
        state.set_joint_group_positions(chain, candidate)

        try:
            if self.scene.is_state_colliding(state, chain.name):
                return False
            distance = self.scene.distance_to_collision(
                state, self.scene.allowed_collision_matrix
            )
        except Exception as e:
            logger.debug("validity_check_failed", group=chain.name, error=str(e))
            return False

        return distance >= self.distance_threshold
