"""
Motion module - Numerical IK and collision queries.

This module provides:
- IK attempts via scipy optimization over compas_robots forward kinematics
- Collision and clearance queries (PyBullet-based)
"""

from reachik.motion.collision import AllowedCollisionMatrix, PyBulletCollisionScene
from reachik.motion.kinematics import ScipyIKRoutine

__all__ = [
    "AllowedCollisionMatrix",
    "PyBulletCollisionScene",
    "ScipyIKRoutine",
]
