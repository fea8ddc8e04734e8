"""
Tests for the solver registry and study loading.
"""

import math

import pytest
import yaml

from reachik.core.exceptions import ConfigurationError, PluginError
from reachik.ik.discretized import DiscretizedIKSolver
from reachik.ik.factory import IKSolverFactory
from reachik.ik.registry import SolverRegistry, load_solver
from reachik.ik.solver import CollisionAwareIKSolver


@pytest.fixture(autouse=True)
def fake_scenes(monkeypatch, fakes):
    monkeypatch.setattr(
        "reachik.ik.solver.PyBulletCollisionScene",
        lambda robot, distance_search_radius=1.0: fakes.Scene(),
    )


@pytest.fixture
def write_study(temp_dir):
    def write(section):
        path = temp_dir / "study.yaml"
        path.write_text(yaml.safe_dump({"ik_solver": section}))
        return path

    return write


class EchoFactory(IKSolverFactory):
    name = "Echo"
    description = "Returns its options"

    def create(self, config, robot=None):
        return dict(config)


class TestSolverRegistry:
    """Tests for SolverRegistry."""

    def test_default_registry(self):
        names = SolverRegistry.default().list_names()
        assert names == ["CollisionAwareIKSolver", "DiscretizedIKSolver"]

    def test_factory_info(self):
        info = SolverRegistry.default().get("DiscretizedIKSolver")
        assert info.description
        assert info.module_path == "reachik.ik.factory.DiscretizedIKSolverFactory"

    def test_register_custom_factory(self):
        registry = SolverRegistry()
        registry.register(EchoFactory)

        assert registry.create("Echo", {"a": 1}) == {"a": 1}

    def test_duplicate_rejected(self):
        registry = SolverRegistry.default()
        registry.register(EchoFactory)
        with pytest.raises(PluginError, match="already registered"):
            registry.register(EchoFactory)

    def test_non_factory_rejected(self):
        with pytest.raises(PluginError):
            SolverRegistry().register(dict)

    def test_unknown_name(self):
        with pytest.raises(PluginError) as exc_info:
            SolverRegistry.default().get("KDLSolver")

        assert exc_info.value.plugin_name == "KDLSolver"
        assert "DiscretizedIKSolver" in exc_info.value.details["available"]

    def test_create_by_name(self, planar_robot):
        solver = SolverRegistry.default().create(
            "CollisionAwareIKSolver",
            {"planning_group": "manipulator", "distance_threshold": 0.0},
            robot=planar_robot,
        )
        assert isinstance(solver, CollisionAwareIKSolver)


class TestLoadSolver:
    """Tests for building solvers from study files."""

    def test_relative_paths(self, write_study, robot_dir, box_mesh_file):
        path = write_study(
            {
                "name": "DiscretizedIKSolver",
                "robot_description": "robots/planar.yaml",
                "planning_group": "manipulator",
                "distance_threshold": 0.01,
                "discretization_angle": math.pi / 2,
                "collision_mesh_filename": box_mesh_file.name,
            }
        )

        solver = load_solver(path)

        assert isinstance(solver, DiscretizedIKSolver)
        assert solver.n_discretizations == 4
        assert solver.get_joint_names() == ["joint_1", "joint_2"]
        assert solver.solver.robot.urdf_path == str(robot_dir / "planar_2dof.urdf")

    def test_preloaded_robot(self, write_study, planar_robot):
        path = write_study(
            {
                "name": "CollisionAwareIKSolver",
                "planning_group": "elbow",
                "distance_threshold": 0.0,
            }
        )

        solver = load_solver(path, robot=planar_robot)

        assert solver.get_joint_names() == ["joint_2"]
        assert solver.get_kinematic_base_frame() == "link_1"

    def test_missing_section(self, temp_dir):
        path = temp_dir / "study.yaml"
        path.write_text("optimization:\n  radius: 0.2\n")
        with pytest.raises(ConfigurationError) as exc_info:
            load_solver(path)
        assert exc_info.value.key == "ik_solver"

    def test_missing_name(self, write_study):
        path = write_study({"planning_group": "manipulator", "distance_threshold": 0.0})
        with pytest.raises(ConfigurationError) as exc_info:
            load_solver(path)
        assert exc_info.value.key == "ik_solver.name"

    def test_unknown_solver(self, write_study):
        path = write_study({"name": "KDLSolver"})
        with pytest.raises(PluginError):
            load_solver(path)

    def test_custom_registry(self, write_study):
        registry = SolverRegistry()
        registry.register(EchoFactory)
        path = write_study({"name": "Echo", "planning_group": "manipulator"})

        assert load_solver(path, registry=registry) == {"planning_group": "manipulator"}
