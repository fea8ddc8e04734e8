"""
Demonstration of reachik solvers on the planar example study.

This script shows how to:
1. Build a solver from a study configuration
2. Generate a reachable target with forward kinematics
3. Solve it with the discretized, collision-aware solver
4. See how the clearance threshold filters solutions
"""

from pathlib import Path

from reachik.core.logging import configure_logging
from reachik.core.robot import RobotLoader
from reachik.ik.registry import SolverRegistry, load_solver

STUDY = Path(__file__).parent / "planar_study" / "study.yaml"
ROBOT = Path(__file__).parent / "planar_study" / "robots" / "planar.yaml"


def main():
    """Run reach demonstration."""
    configure_logging(level="WARNING")

    print("=" * 60)
    print("reachik Demo")
    print("=" * 60)

    # 1. Build the solver described by the study
    print("\n1. Building solver from study configuration")
    with load_solver(STUDY) as solver:
        print(f"   [OK] Solver: {type(solver).__name__}")
        print(f"   [OK] Base frame: {solver.get_kinematic_base_frame()}")
        print(f"   [OK] Joints: {', '.join(solver.get_joint_names())}")
        print(f"   [OK] Samples about target Z: {solver.n_discretizations}")

        # 2. Reachable target from a known configuration
        print("\n2. Generating target with forward kinematics")
        robot = RobotLoader.get_shared(ROBOT)
        goal = {"joint_1": 0.4, "joint_2": 0.8}
        target = robot.forward_kinematics(goal, "tool0")
        print(f"   Target position: {[round(c, 3) for c in target.point]}")

        # 3. Solve
        print("\n3. Solving")
        solutions = solver.solve_ik(target, {})
        print(f"   Found {len(solutions)} solution(s)")
        for i, solution in enumerate(solutions):
            print(f"     #{i}: {[f'{v:.3f}' for v in solution]}")

    # 4. Same target with a clearance the obstacle violates
    print("\n4. Raising the clearance threshold to 0.5 m")
    strict = SolverRegistry.default().create(
        "CollisionAwareIKSolver",
        {
            "planning_group": "manipulator",
            "distance_threshold": 0.5,
            "collision_mesh_filename": str(STUDY.parent / "obstacle.obj"),
        },
        robot=robot,
    )
    with strict:
        print(f"   Found {len(strict.solve_ik(target, {}))} solution(s)")

    print("\n" + "=" * 60)
    print("[SUCCESS] Reach demo completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    main()
