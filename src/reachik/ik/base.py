"""
Abstract interface shared by every IK solver.
"""

from abc import ABC, abstractmethod
from typing import Mapping

from compas.geometry import Frame


class IKSolver(ABC):
    """
    Interface of an IK solver used by reachability studies.

    ``solve_ik`` returns every joint configuration found for a target; an
    empty list means no solution, which is a normal outcome.
    """

    @abstractmethod
    def solve_ik(self, target: Frame, seed: Mapping[str, float]) -> list[list[float]]:
        """
        Solve IK for a target pose.

        Args:
            target: Target pose of the chain's tip, in the kinematic base frame
            seed: Joint name to value map used to initialize the solve

        Returns:
            Joint configurations, each ordered like ``get_joint_names()``
        """
        pass

    @abstractmethod
    def get_joint_names(self) -> list[str]:
        """Active joint names of the solved chain, in chain order."""
        pass

    @abstractmethod
    def get_kinematic_base_frame(self) -> str:
        """Frame that target poses are expressed in."""
        pass

    def close(self) -> None:
        """Release solver resources. Override if needed."""
        pass

    def __enter__(self) -> "IKSolver":
        return self

    def __exit__(self, *args) -> None:
        self.close()
