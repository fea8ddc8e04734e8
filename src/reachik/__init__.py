"""
reachik - Collision-aware inverse kinematics for robot reachability studies.

Solves IK for target poses while rejecting configurations that collide or come
closer than a distance threshold to obstacles, optionally sampling the free
rotation about the target's approach axis.
"""

__version__ = "0.1.0"
__author__ = "reachik Contributors"

from reachik.ik.discretized import DiscretizedIKSolver
from reachik.ik.registry import SolverRegistry, load_solver
from reachik.ik.solver import CollisionAwareIKSolver

__all__ = [
    "__version__",
    "CollisionAwareIKSolver",
    "DiscretizedIKSolver",
    "SolverRegistry",
    "load_solver",
]
