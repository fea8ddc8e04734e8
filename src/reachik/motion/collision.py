"""
Collision detection for IK validation.

This module provides the allowed-collision matrix and a collision scene backed
by PyBullet's distance queries. The scene answers two questions about a robot
state: is it colliding, and how far is it from the nearest obstacle it is not
allowed to touch.
"""

import math
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

import pybullet as p

from reachik.core.exceptions import SceneError
from reachik.core.geometry import CollisionObject
from reachik.core.logging import get_logger
from reachik.core.robot import RobotDescription, RobotState

logger = get_logger(__name__)

BASE_LINK_INDEX = -1
DEFAULT_DISTANCE_SEARCH_RADIUS = 1.0


class AllowedCollisionMatrix:
    """
    Symmetric record of entity pairs allowed to touch.

    Entities are robot link names or collision object names. Pairs without an
    entry are not allowed to touch.
    """

    def __init__(self) -> None:
        self._entries: Dict[frozenset, bool] = {}

    def set_entry(self, name: str, other_names: str | Iterable[str], allowed: bool) -> None:
        """Set the entry between ``name`` and each of ``other_names``."""
        if isinstance(other_names, str):
            other_names = [other_names]
        for other in other_names:
            self._entries[frozenset((name, other))] = allowed

    def get_entry(self, name: str, other: str) -> bool:
        return self._entries.get(frozenset((name, other)), False)


class CollisionScene(Protocol):
    """Collision-query contract used by the IK validity check."""

    @property
    def allowed_collision_matrix(self) -> AllowedCollisionMatrix: ...

    def is_state_colliding(self, state: RobotState, group_name: str) -> bool: ...

    def distance_to_collision(
        self, state: RobotState, acm: AllowedCollisionMatrix
    ) -> float: ...

    def process_collision_object(self, obj: CollisionObject) -> bool: ...

    def close(self) -> None: ...


class PyBulletCollisionScene:
    """
    Collision scene using PyBullet.

    Owns a headless PyBullet client holding the robot (fixed base at the
    origin) and any number of named static obstacles. Checks:
    - Self-collision between link pairs not allowed by the matrix
    - Environment collision between robot links and obstacles
    - Clearance from the robot to the nearest obstacle
    """

    def __init__(
        self,
        robot: RobotDescription,
        distance_search_radius: float = DEFAULT_DISTANCE_SEARCH_RADIUS,
    ):
        """
        Initialize the scene and load the robot.

        Args:
            robot: Robot description (its URDF is loaded into PyBullet)
            distance_search_radius: Clearance beyond which obstacles are
                reported as infinitely far away

        Raises:
            SceneError: If PyBullet cannot connect or load the URDF
        """
        self.robot = robot
        self.distance_search_radius = distance_search_radius
        self.client_id: Optional[int] = None

        self.client_id = p.connect(p.DIRECT)
        if self.client_id < 0:
            raise SceneError("Failed to connect to PyBullet")

        try:
            self.robot_id = p.loadURDF(
                robot.urdf_path,
                useFixedBase=True,
                physicsClientId=self.client_id,
            )
        except p.error as e:
            self.close()
            raise SceneError(
                f"Failed to load robot into collision scene: {e}",
                details={"urdf_path": robot.urdf_path},
            ) from e

        self.joint_name_to_index: Dict[str, int] = {}
        self.link_index_to_name: Dict[int, str] = {}
        self._link_parent: Dict[int, int] = {}
        self._index_robot()

        self._objects: Dict[str, int] = {}
        self._acm = AllowedCollisionMatrix()
        for child, parent in self._link_parent.items():
            self._acm.set_entry(
                self.link_index_to_name[child], self.link_index_to_name[parent], True
            )
        for link_a, link_b in robot.config.disabled_collisions:
            self._acm.set_entry(link_a, link_b, True)

        self._group_links: Dict[str, List[int]] = {}
        self.set_state(RobotState(robot))
        logger.debug("collision_scene_ready", urdf=robot.urdf_path, links=self.link_names)

    def _index_robot(self) -> None:
        base_name = p.getBodyInfo(self.robot_id, physicsClientId=self.client_id)[0]
        self.link_index_to_name[BASE_LINK_INDEX] = base_name.decode("utf-8")

        num_joints = p.getNumJoints(self.robot_id, physicsClientId=self.client_id)
        for i in range(num_joints):
            info = p.getJointInfo(self.robot_id, i, physicsClientId=self.client_id)
            self.joint_name_to_index[info[1].decode("utf-8")] = i
            self.link_index_to_name[i] = info[12].decode("utf-8")
            self._link_parent[i] = info[16]

    @property
    def allowed_collision_matrix(self) -> AllowedCollisionMatrix:
        return self._acm

    @property
    def link_names(self) -> List[str]:
        return [self.link_index_to_name[i] for i in sorted(self.link_index_to_name)]

    def link_index(self, link_name: str) -> int:
        for index, name in self.link_index_to_name.items():
            if name == link_name:
                return index
        raise SceneError(f"Unknown link in collision scene: {link_name}")

    def close(self) -> None:
        """Disconnect from PyBullet."""
        if self.client_id is not None:
            p.disconnect(physicsClientId=self.client_id)
            self.client_id = None

    def __enter__(self) -> "PyBulletCollisionScene":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def set_state(self, state: RobotState) -> None:
        """Move the robot to a joint state."""
        for joint_name, value in state.positions.items():
            index = self.joint_name_to_index.get(joint_name)
            if index is not None:
                p.resetJointState(
                    self.robot_id, index, value, physicsClientId=self.client_id
                )

    def link_world_pose(self, link_name: str) -> Tuple[tuple, tuple]:
        """Position and (x, y, z, w) orientation of a link frame."""
        index = self.link_index(link_name)
        if index == BASE_LINK_INDEX:
            return p.getBasePositionAndOrientation(
                self.robot_id, physicsClientId=self.client_id
            )
        link_state = p.getLinkState(
            self.robot_id,
            index,
            computeForwardKinematics=True,
            physicsClientId=self.client_id,
        )
        return link_state[4], link_state[5]

    def process_collision_object(self, obj: CollisionObject) -> bool:
        """
        Insert or replace a static obstacle.

        The mesh is placed at the pose its frame link has in the default
        robot state, whatever state earlier queries left the robot in.

        Returns:
            True if the object is in the scene, False if PyBullet rejected it
        """
        self.set_state(RobotState(self.robot))
        try:
            position, orientation = self.link_world_pose(obj.frame_id)
        except SceneError:
            logger.error("collision_object_unknown_frame", name=obj.name, frame=obj.frame_id)
            return False

        # Convex meshes become a convex hull; anything else a static triangle mesh
        shape_args = {"vertices": obj.mesh.vertices.tolist()}
        if not obj.mesh.is_convex:
            shape_args["indices"] = obj.mesh.faces.flatten().tolist()
            shape_args["flags"] = p.GEOM_FORCE_CONCAVE_TRIMESH
        try:
            shape = p.createCollisionShape(
                shapeType=p.GEOM_MESH,
                physicsClientId=self.client_id,
                **shape_args,
            )
            if shape < 0:
                return False
            body_id = p.createMultiBody(
                baseMass=0,
                baseCollisionShapeIndex=shape,
                basePosition=position,
                baseOrientation=orientation,
                physicsClientId=self.client_id,
            )
        except p.error as e:
            logger.error("collision_object_rejected", name=obj.name, error=str(e))
            return False

        if self.has_object(obj.name):
            p.removeBody(self._objects[obj.name], physicsClientId=self.client_id)
        self._objects[obj.name] = body_id

        logger.debug(
            "collision_object_added",
            name=obj.name,
            frame=obj.frame_id,
            faces=len(obj.mesh.faces),
        )
        return True

    def has_object(self, name: str) -> bool:
        return name in self._objects

    def _group_link_indices(self, group_name: str) -> List[int]:
        """Links moved by the group's joints (their child links and descendants)."""
        if group_name in self._group_links:
            return self._group_links[group_name]

        chain = self.robot.get_kinematic_chain(group_name)
        children: Dict[int, List[int]] = {}
        for child, parent in self._link_parent.items():
            children.setdefault(parent, []).append(child)

        moved: List[int] = []
        stack = [
            self.joint_name_to_index[name]
            for name in chain.joint_names
            if name in self.joint_name_to_index
        ]
        while stack:
            index = stack.pop()
            if index in moved:
                continue
            moved.append(index)
            stack.extend(children.get(index, []))

        self._group_links[group_name] = sorted(moved)
        return self._group_links[group_name]

    def _closest_distance(
        self,
        body_b: int,
        link_a: int,
        link_b: int,
        max_distance: float,
    ) -> float:
        points = p.getClosestPoints(
            bodyA=self.robot_id,
            bodyB=body_b,
            distance=max_distance,
            linkIndexA=link_a,
            linkIndexB=link_b,
            physicsClientId=self.client_id,
        )
        if not points:
            return math.inf
        return min(point[8] for point in points)

    def is_state_colliding(self, state: RobotState, group_name: str) -> bool:
        """
        Check if the links moved by a group collide with anything.

        Args:
            state: Robot state to check
            group_name: Planning group whose links are checked

        Returns:
            True if collision detected, False otherwise
        """
        self.set_state(state)
        p.performCollisionDetection(physicsClientId=self.client_id)

        links = self._group_link_indices(group_name)

        for name, body_id in self._objects.items():
            for link in links:
                if self._acm.get_entry(name, self.link_index_to_name[link]):
                    continue
                if self._closest_distance(body_id, link, BASE_LINK_INDEX, 0.0) <= 0.0:
                    return True

        checked = set()
        for link in links:
            for other in self.link_index_to_name:
                pair = frozenset((link, other))
                if other == link or pair in checked:
                    continue
                checked.add(pair)
                if self._acm.get_entry(
                    self.link_index_to_name[link], self.link_index_to_name[other]
                ):
                    continue
                if self._closest_distance(self.robot_id, link, other, 0.0) <= 0.0:
                    return True

        return False

    def distance_to_collision(
        self,
        state: RobotState,
        acm: AllowedCollisionMatrix,
    ) -> float:
        """
        Distance from the robot to the nearest obstacle it may not touch.

        Returns:
            Clearance in metres, ``math.inf`` if nothing lies within the
            search radius
        """
        self.set_state(state)
        p.performCollisionDetection(physicsClientId=self.client_id)

        nearest = math.inf
        for name, body_id in self._objects.items():
            for link, link_name in self.link_index_to_name.items():
                if acm.get_entry(name, link_name):
                    continue
                nearest = min(
                    nearest,
                    self._closest_distance(
                        body_id, link, BASE_LINK_INDEX, self.distance_search_radius
                    ),
                )
        return nearest
