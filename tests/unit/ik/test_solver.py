"""
Tests for the collision-aware IK solver.
"""

import math

import pytest
import structlog
from compas.geometry import Frame, Point, Vector

from reachik.core.exceptions import GeometryError, RobotError, SceneError
from reachik.ik.solver import CollisionAwareIKSolver


@pytest.fixture
def target():
    return Frame(Point(0.6, 0.3, 0.0), Vector(1, 0, 0), Vector(0, 1, 0))


def make_solver(robot, scene, routine, threshold=0.0, group="manipulator"):
    return CollisionAwareIKSolver(
        robot, group, threshold, scene=scene, ik_routine=routine
    )


def near_obstacle(values, acm):
    """Clearance shrinks as joint_1 grows; 0.04 m at joint_1 >= 1."""
    if acm.get_entry("reach_object", "link_2"):
        return math.inf
    return 0.04 if values[0] >= 1.0 else 0.5


class TestSolverConstruction:
    """Tests for solver construction and accessors."""

    def test_joint_names_and_base_frame(self, planar_robot, fake_scene, fake_routine):
        solver = make_solver(planar_robot, fake_scene, fake_routine)

        assert solver.get_joint_names() == ["joint_1", "joint_2"]
        assert solver.get_kinematic_base_frame() == "base_link"
        assert solver.collision_object_name == "reach_object"

    def test_joint_names_is_a_copy(self, planar_robot, fake_scene, fake_routine):
        solver = make_solver(planar_robot, fake_scene, fake_routine)
        solver.get_joint_names().append("extra")
        assert solver.get_joint_names() == ["joint_1", "joint_2"]

    def test_unknown_group(self, planar_robot, fake_scene, fake_routine):
        with pytest.raises(RobotError, match="gantry"):
            make_solver(planar_robot, fake_scene, fake_routine, group="gantry")

    def test_close_closes_scene(self, planar_robot, fake_scene, fake_routine):
        with make_solver(planar_robot, fake_scene, fake_routine):
            pass
        assert fake_scene.closed


class TestSolveIK:
    """Tests for solve_ik."""

    def test_reachable_target_returns_one_solution(
        self, planar_robot, fake_scene, fake_routine, target
    ):
        solver = make_solver(planar_robot, fake_scene, fake_routine)

        solutions = solver.solve_ik(target, {"joint_1": 0.0, "joint_2": 0.0})

        assert len(solutions) == 1
        assert len(solutions[0]) == len(solver.get_joint_names()) == 2

    def test_seed_projected_onto_chain(self, planar_robot, fake_scene, fake_routine, target):
        solver = make_solver(planar_robot, fake_scene, fake_routine)

        solver.solve_ik(target, {"joint_2": 0.4, "joint_1": -0.2, "gripper": 1.0})

        assert fake_routine.calls[-1][1] == [-0.2, 0.4]

    def test_missing_seed_joint_uses_default(self, planar_robot, fake_scene, fake_routine, target):
        solver = make_solver(planar_robot, fake_scene, fake_routine)

        solver.solve_ik(target, {"joint_2": 0.4})

        assert fake_routine.calls[-1][1] == [0.0, 0.4]

    def test_solution_in_chain_order(self, planar_robot, fake_scene, fakes, target):
        routine = fakes.IKRoutine(lambda target, seed: [[0.25, -0.75]])
        solver = make_solver(planar_robot, fake_scene, routine)

        assert solver.solve_ik(target, {}) == [[0.25, -0.75]]

    def test_no_ik_solution_is_empty(self, planar_robot, fake_scene, fakes, target):
        routine = fakes.IKRoutine(lambda target, seed: [])
        solver = make_solver(planar_robot, fake_scene, routine)

        assert solver.solve_ik(target, {}) == []

    def test_all_candidates_too_close_is_empty(self, planar_robot, fakes, target):
        scene = fakes.Scene(distance=lambda values, acm: 0.01)
        routine = fakes.IKRoutine(lambda target, seed: [[0.0, 0.0], [1.0, 1.0], [2.0, -1.0]])
        solver = make_solver(planar_robot, scene, routine, threshold=0.05)

        assert solver.solve_ik(target, {"joint_1": 0.0, "joint_2": 0.0}) == []

    def test_rejected_candidates_are_skipped(self, planar_robot, fakes, target):
        scene = fakes.Scene(distance=near_obstacle)
        routine = fakes.IKRoutine(lambda target, seed: [[1.2, 0.0], [0.3, 0.1]])
        solver = make_solver(planar_robot, scene, routine, threshold=0.05)

        assert solver.solve_ik(target, {}) == [[0.3, 0.1]]

    def test_colliding_candidates_rejected(self, planar_robot, fakes, target):
        scene = fakes.Scene(colliding=lambda values, acm: True)
        solver = make_solver(planar_robot, scene, fakes.IKRoutine())

        assert solver.solve_ik(target, {}) == []

    def test_idempotent(self, planar_robot, fakes, target):
        scene = fakes.Scene(distance=near_obstacle)
        routine = fakes.IKRoutine(lambda target, seed: [[1.2, 0.0], [0.3, 0.1]])
        solver = make_solver(planar_robot, scene, routine, threshold=0.05)
        seed = {"joint_1": 0.2, "joint_2": 0.1}

        assert solver.solve_ik(target, seed) == solver.solve_ik(target, seed)

    def test_calls_do_not_share_state(self, planar_robot, fakes, target):
        routine = fakes.IKRoutine(lambda target, seed: [[1.5, 1.5]])
        solver = make_solver(planar_robot, fakes.Scene(), routine)

        solver.solve_ik(target, {})
        solver.solve_ik(target, {})

        assert routine.calls[1][1] == [0.0, 0.0]

    def test_attempt_runs_in_planning_group_context(self, planar_robot, fake_scene, fakes, target):
        bound = []

        def solve(target, seed):
            bound.append(structlog.contextvars.get_contextvars())
            return [seed]

        solver = make_solver(planar_robot, fake_scene, fakes.IKRoutine(solve))
        solver.solve_ik(target, {})

        assert bound == [{"planning_group": "manipulator"}]
        assert structlog.contextvars.get_contextvars() == {}


class TestCollisionMesh:
    """Tests for add_collision_mesh and set_touch_links."""

    def test_add_collision_mesh(self, planar_robot, fake_scene, fake_routine, box_mesh_file):
        solver = make_solver(planar_robot, fake_scene, fake_routine)

        solver.add_collision_mesh(str(box_mesh_file), "base_link")

        obj = fake_scene.objects["reach_object"]
        assert obj.frame_id == "base_link"
        assert len(obj.mesh.faces) == 12

    def test_add_collision_mesh_replaces(self, planar_robot, fake_scene, fake_routine, box_mesh_file):
        solver = make_solver(planar_robot, fake_scene, fake_routine)

        solver.add_collision_mesh(str(box_mesh_file), "base_link")
        solver.add_collision_mesh(str(box_mesh_file), "link_1")

        assert list(fake_scene.objects) == ["reach_object"]
        assert fake_scene.objects["reach_object"].frame_id == "link_1"

    def test_unreadable_mesh(self, planar_robot, fake_scene, fake_routine, temp_dir):
        solver = make_solver(planar_robot, fake_scene, fake_routine)

        with pytest.raises(GeometryError):
            solver.add_collision_mesh(str(temp_dir / "missing.stl"), "base_link")

    def test_scene_rejects_mesh(self, planar_robot, fakes, fake_routine, box_mesh_file):
        scene = fakes.Scene(accept_objects=False)
        solver = make_solver(planar_robot, scene, fake_routine)

        with pytest.raises(SceneError) as exc_info:
            solver.add_collision_mesh(str(box_mesh_file), "base_link")

        assert exc_info.value.details["collision_mesh_filename"] == str(box_mesh_file)

    def test_set_touch_links(self, planar_robot, fake_scene, fake_routine):
        solver = make_solver(planar_robot, fake_scene, fake_routine)

        solver.set_touch_links(["link_2", "tool0"])

        acm = fake_scene.allowed_collision_matrix
        assert acm.get_entry("reach_object", "link_2")
        assert acm.get_entry("reach_object", "tool0")
        assert not acm.get_entry("reach_object", "link_1")

    def test_touch_link_makes_rejected_candidate_valid(self, planar_robot, fakes, target):
        scene = fakes.Scene(distance=near_obstacle)
        routine = fakes.IKRoutine(lambda target, seed: [[1.2, 0.0]])
        solver = make_solver(planar_robot, scene, routine, threshold=0.05)
        assert solver.solve_ik(target, {}) == []

        solver.set_touch_links(["link_2"])

        assert solver.solve_ik(target, {}) == [[1.2, 0.0]]

    def test_touch_link_leaves_other_candidates_alone(self, planar_robot, fakes, target):
        scene = fakes.Scene(distance=near_obstacle)
        routine = fakes.IKRoutine(lambda target, seed: [[0.3, 0.1]])
        solver = make_solver(planar_robot, scene, routine, threshold=0.05)
        before = solver.solve_ik(target, {})

        solver.set_touch_links(["link_2"])

        assert solver.solve_ik(target, {}) == before == [[0.3, 0.1]]
