"""
Command-line interface for reachik.

Provides commands to inspect an IK solver described by a study configuration
and to solve a single target pose with it.
"""

import json
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from reachik import __version__
from reachik.core.exceptions import ReachIKError
from reachik.core.geometry import frame_from_pose
from reachik.core.logging import configure_logging
from reachik.ik.registry import SolverRegistry, load_solver

console = Console()


def _parse_seed(values: tuple[str, ...]) -> dict[str, float]:
    seed = {}
    for item in values:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected NAME=VALUE, got '{item}'", param_hint="--seed")
        try:
            seed[name] = float(value)
        except ValueError:
            raise click.BadParameter(f"'{value}' is not a number", param_hint="--seed")
    return seed


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=None, help="Log level (default: $REACHIK_LOG_LEVEL or INFO)")
@click.option("--json-logs", is_flag=True, help="Emit JSON log lines")
def main(log_level: Optional[str], json_logs: bool) -> None:
    """reachik - Collision-aware IK solvers for reachability studies."""
    configure_logging(level=log_level, json_output=json_logs)


@main.command("solvers")
def list_solvers() -> None:
    """List available solver kinds."""
    table = Table(title="Available Solvers")
    table.add_column("Name", style="cyan")
    table.add_column("Description")

    for info in SolverRegistry.default().list_factories():
        table.add_row(info.name, info.description)

    console.print(table)


@main.command("info")
@click.argument("config_path", type=click.Path(exists=True, path_type=Path))
def info(config_path: Path) -> None:
    """Show the solver described by a study configuration."""
    try:
        with load_solver(config_path) as solver:
            table = Table(title=f"Solver: {type(solver).__name__}")
            table.add_column("Property", style="cyan")
            table.add_column("Value")

            table.add_row("Base frame", solver.get_kinematic_base_frame())
            table.add_row("Joints", ", ".join(solver.get_joint_names()))
            table.add_row("Distance threshold", f"{solver.distance_threshold:g}")
            if hasattr(solver, "n_discretizations"):
                table.add_row("Discretization angle", f"{solver.dt:.6f}")
                table.add_row("Samples", str(solver.n_discretizations))

            console.print(table)
    except ReachIKError as e:
        console.print(f"[red]✗[/red] Failed to build solver: {e}")
        raise SystemExit(1)


@main.command("solve")
@click.argument("config_path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--position", "-p", nargs=3, type=float, required=True, help="Target position X Y Z"
)
@click.option(
    "--quaternion", "-q", nargs=4, type=float, default=None, help="Target orientation W X Y Z"
)
@click.option("--seed", "-s", multiple=True, help="Seed joint value NAME=VALUE (repeatable)")
@click.option("--json", "as_json", is_flag=True, help="Print solutions as JSON")
def solve(
    config_path: Path,
    position: tuple[float, float, float],
    quaternion: Optional[tuple[float, float, float, float]],
    seed: tuple[str, ...],
    as_json: bool,
) -> None:
    """Solve IK for one target pose."""
    seed_map = _parse_seed(seed)

    try:
        target = frame_from_pose(position, quaternion)
        with load_solver(config_path) as solver:
            joint_names = solver.get_joint_names()
            solutions = solver.solve_ik(target, seed_map)
    except ReachIKError as e:
        console.print(f"[red]✗[/red] Failed to solve: {e}")
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps({"joint_names": joint_names, "solutions": solutions}))
        return

    if not solutions:
        console.print("[yellow]No valid IK solution found.[/yellow]")
        return

    table = Table(title=f"{len(solutions)} solution(s)")
    table.add_column("#", style="cyan")
    for name in joint_names:
        table.add_column(name)
    for i, solution in enumerate(solutions):
        table.add_row(str(i), *(f"{value:.4f}" for value in solution))

    console.print(table)


if __name__ == "__main__":
    main()
