"""
IK solvers for reachability studies.
"""

from reachik.ik.base import IKSolver
from reachik.ik.discretized import DiscretizedIKSolver
from reachik.ik.factory import (
    CollisionAwareIKSolverFactory,
    DiscretizedIKSolverFactory,
    IKSolverFactory,
)
from reachik.ik.registry import SolverRegistry, load_solver
from reachik.ik.solver import CollisionAwareIKSolver
from reachik.ik.validity import ValidityPredicate

__all__ = [
    "IKSolver",
    "CollisionAwareIKSolver",
    "DiscretizedIKSolver",
    "ValidityPredicate",
    "IKSolverFactory",
    "CollisionAwareIKSolverFactory",
    "DiscretizedIKSolverFactory",
    "SolverRegistry",
    "load_solver",
]
