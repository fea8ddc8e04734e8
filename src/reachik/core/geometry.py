"""
Geometry handling for reachik using COMPAS and trimesh.

Provides pose utilities on COMPAS frames and the construction of collision
objects from mesh files.
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

import numpy as np
import trimesh
from compas.geometry import Frame, Point, Rotation, Transformation, Vector

from reachik.core.exceptions import GeometryError

Z_AXIS = Vector(0, 0, 1)


@dataclass
class CollisionObject:
    """
    Obstacle geometry ready to be inserted into a collision scene.

    Attributes:
        name: Scene-wide identifier of the object
        mesh: Triangle mesh, expressed in ``frame_id``
        frame_id: Name of the robot link the mesh is attached to
        source: File the mesh was loaded from
    """

    name: str
    mesh: trimesh.Trimesh
    frame_id: str
    source: str = ""


class GeometryLoader:
    """
    Loads triangle meshes from various file formats.

    Supports STL, OBJ, PLY and OFF through trimesh.
    """

    SUPPORTED_FORMATS = {".stl", ".obj", ".ply", ".off"}

    @classmethod
    def resolve_path(cls, file_path: str | Path) -> Path:
        """Strip a ``file://`` scheme and return a filesystem path."""
        text = str(file_path)
        if text.startswith("file://"):
            text = text[len("file://"):]
        return Path(text)

    @classmethod
    def load(cls, file_path: str | Path, **kwargs: Any) -> trimesh.Trimesh:
        """
        Load a triangle mesh from file.

        Args:
            file_path: Path to geometry file
            **kwargs: Additional arguments passed to trimesh.load

        Returns:
            Trimesh mesh object

        Raises:
            GeometryError: If the file is missing, unsupported or holds no triangles
        """
        path = cls.resolve_path(file_path)

        if not path.exists():
            raise GeometryError(f"File not found: {path}")

        if path.suffix.lower() not in cls.SUPPORTED_FORMATS:
            raise GeometryError(
                f"Unsupported format: {path.suffix}. "
                f"Supported formats: {cls.SUPPORTED_FORMATS}"
            )

        try:
            loaded = trimesh.load(str(path), **kwargs)
        except Exception as e:
            raise GeometryError(f"Failed to load geometry from {path}: {e}") from e

        if isinstance(loaded, trimesh.Scene):
            meshes = [
                geom for geom in loaded.geometry.values()
                if isinstance(geom, trimesh.Trimesh)
            ]
            if not meshes:
                raise GeometryError(f"No triangle meshes in {path}")
            mesh = trimesh.util.concatenate(meshes)
        elif isinstance(loaded, trimesh.Trimesh):
            mesh = loaded
        else:
            raise GeometryError(f"Unexpected geometry type: {type(loaded)}")

        if len(mesh.faces) == 0:
            raise GeometryError(f"Mesh has no faces: {path}")

        return mesh


def create_collision_object(
    file_path: str | Path,
    frame_id: str,
    name: str,
) -> CollisionObject:
    """
    Build a named collision object from a mesh file.

    Raises:
        GeometryError: If the mesh cannot be read or interpreted
    """
    mesh = GeometryLoader.load(file_path)
    return CollisionObject(name=name, mesh=mesh, frame_id=frame_id, source=str(file_path))


def frame_to_matrix(frame: Frame) -> np.ndarray:
    """4x4 homogeneous matrix of a frame."""
    return np.array(Transformation.from_frame(frame).matrix, dtype=float)


def rotate_about_local_z(frame: Frame, angle: float) -> Frame:
    """
    Rotate a frame about its own Z axis.

    The rotation is composed on the right (``frame * Rz(angle)``), so the
    origin is unchanged and the Z axis keeps its direction.
    """
    rotated = Transformation.from_frame(frame) * Rotation.from_axis_and_angle(Z_AXIS, angle)
    return Frame.from_transformation(rotated)


def frame_from_pose(
    position: Sequence[float],
    quaternion: Sequence[float] | None = None,
) -> Frame:
    """
    Build a frame from a position and an optional (w, x, y, z) quaternion.

    Raises:
        GeometryError: If the quaternion has zero length
    """
    point = Point(*position)
    if quaternion is None:
        return Frame(point, Vector(1, 0, 0), Vector(0, 1, 0))

    norm = math.sqrt(sum(q * q for q in quaternion))
    if norm < 1e-12:
        raise GeometryError("Quaternion has zero length", details={"quaternion": list(quaternion)})
    return Frame.from_quaternion([q / norm for q in quaternion], point=point)
