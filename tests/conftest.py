"""
Pytest configuration and shared fixtures.
"""

import math
import tempfile
from pathlib import Path

import pytest

from reachik.core.robot import RobotLoader
from reachik.motion.collision import AllowedCollisionMatrix

# Two revolute joints about Z; link_1 is 0.5 m long, link_2 0.4 m, tool0 at its end.
PLANAR_URDF = """<?xml version="1.0"?>
<robot name="planar_2dof">
  <link name="base_link">
    <collision>
      <origin xyz="0 0 -0.1" rpy="0 0 0"/>
      <geometry><box size="0.1 0.1 0.1"/></geometry>
    </collision>
  </link>
  <link name="link_1">
    <collision>
      <origin xyz="0.25 0 0" rpy="0 0 0"/>
      <geometry><box size="0.5 0.05 0.05"/></geometry>
    </collision>
  </link>
  <link name="link_2">
    <collision>
      <origin xyz="0.2 0 0" rpy="0 0 0"/>
      <geometry><box size="0.4 0.05 0.05"/></geometry>
    </collision>
  </link>
  <link name="tool0"/>
  <joint name="joint_1" type="revolute">
    <parent link="base_link"/>
    <child link="link_1"/>
    <origin xyz="0 0 0" rpy="0 0 0"/>
    <axis xyz="0 0 1"/>
    <limit lower="-3.14159" upper="3.14159" effort="10" velocity="1"/>
  </joint>
  <joint name="joint_2" type="revolute">
    <parent link="link_1"/>
    <child link="link_2"/>
    <origin xyz="0.5 0 0" rpy="0 0 0"/>
    <axis xyz="0 0 1"/>
    <limit lower="-3.14159" upper="3.14159" effort="10" velocity="1"/>
  </joint>
  <joint name="tool_joint" type="fixed">
    <parent link="link_2"/>
    <child link="tool0"/>
    <origin xyz="0.4 0 0" rpy="0 0 0"/>
  </joint>
</robot>
"""

PLANAR_ROBOT_YAML = """
robot:
  name: planar_2dof
  urdf_path: planar_2dof.urdf

planning_groups:
  manipulator:
    base_link: base_link
    tip_link: tool0
  elbow:
    joints: [joint_2]

disabled_collisions:
  - [base_link, link_2]
"""


class FakeScene:
    """
    Collision scene double.

    ``colliding`` and ``distance`` are callables of the chain joint values
    (joint_1, joint_2, ...) ordered by name.
    """

    def __init__(self, colliding=None, distance=None, accept_objects=True):
        self._acm = AllowedCollisionMatrix()
        self.colliding = colliding or (lambda values, acm: False)
        self.distance = distance or (lambda values, acm: math.inf)
        self.accept_objects = accept_objects
        self.objects = {}
        self.closed = False
        self.checked = []

    @property
    def allowed_collision_matrix(self):
        return self._acm

    @staticmethod
    def _values(state):
        positions = state.positions
        return [positions[name] for name in sorted(positions)]

    def is_state_colliding(self, state, group_name):
        values = self._values(state)
        self.checked.append(values)
        return self.colliding(values, self._acm)

    def distance_to_collision(self, state, acm):
        return self.distance(self._values(state), acm)

    def process_collision_object(self, obj):
        if not self.accept_objects:
            return False
        self.objects[obj.name] = obj
        return True

    def close(self):
        self.closed = True


class FakeIKRoutine:
    """
    IK routine double.

    ``solve`` maps (target, seed values) to a list of candidates tried in
    order; the first one accepted by ``is_valid`` is returned.
    """

    def __init__(self, solve=None):
        self.solve = solve or (lambda target, seed: [seed])
        self.calls = []

    def attempt(self, target, state, chain, is_valid):
        seed = state.joint_group_positions(chain)
        self.calls.append((target, list(seed)))
        for candidate in self.solve(target, seed):
            if candidate is not None and is_valid(candidate):
                return list(candidate)
        return None


@pytest.fixture(autouse=True)
def clear_shared_robots():
    """Drop robot descriptions cached by previous tests."""
    RobotLoader.clear_shared()
    yield
    RobotLoader.clear_shared()


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def robot_dir(temp_dir):
    """Directory holding the planar robot's URDF and description YAML."""
    robot_dir = temp_dir / "robots"
    robot_dir.mkdir()
    (robot_dir / "planar_2dof.urdf").write_text(PLANAR_URDF)
    (robot_dir / "planar.yaml").write_text(PLANAR_ROBOT_YAML)
    return robot_dir


@pytest.fixture
def robot_yaml(robot_dir):
    return robot_dir / "planar.yaml"


@pytest.fixture
def planar_robot(robot_yaml):
    """Loaded RobotDescription of the planar 2-DOF arm."""
    return RobotLoader.load(robot_yaml)


@pytest.fixture
def box_mesh_file(temp_dir):
    """10 cm cube centred at x=0.7 (over link_2 at the zero configuration)."""
    import trimesh

    mesh = trimesh.creation.box(extents=[0.1, 0.1, 0.1])
    mesh.apply_translation([0.7, 0.0, 0.0])
    path = temp_dir / "obstacle.stl"
    mesh.export(str(path))
    return path


@pytest.fixture
def fake_scene():
    return FakeScene()


@pytest.fixture
def fake_routine():
    return FakeIKRoutine()


@pytest.fixture
def fakes():
    """Access to the fake collaborator classes."""

    class Fakes:
        Scene = FakeScene
        IKRoutine = FakeIKRoutine

    return Fakes
