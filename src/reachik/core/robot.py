"""
Robot model management for reachik.

Loads URDF models with compas_robots, resolves planning groups into kinematic
chains and provides the scratch joint state used while solving.
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

import numpy as np
from compas.geometry import Frame
from compas_robots import Configuration, RobotModel
from compas_robots.model import Joint

from reachik.core.config import PlanningGroupConfig, RobotConfig, load_robot_config
from reachik.core.exceptions import ConfigurationError, RobotError


@dataclass(frozen=True)
class KinematicChain:
    """
    Named set of active joints solved for together.

    Attributes:
        name: Planning group name
        joint_names: Active joint names in chain order
        base_frame: Link that pose targets are expressed in
        tip_link: Link whose pose is controlled
        joint_limits: (lower, upper) per joint, same order as joint_names
    """

    name: str
    joint_names: tuple[str, ...]
    base_frame: str
    tip_link: str
    joint_limits: tuple[tuple[float, float], ...]

    @property
    def n_joints(self) -> int:
        return len(self.joint_names)


def _joint_limits(joint: Joint) -> tuple[float, float]:
    if joint.type == Joint.CONTINUOUS or not joint.limit:
        return (-math.pi, math.pi)
    lower = joint.limit.lower if joint.limit.lower is not None else -math.pi
    upper = joint.limit.upper if joint.limit.upper is not None else math.pi
    return (float(lower), float(upper))


class RobotDescription:
    """
    Robot model plus the semantic information needed for IK.

    Combines a compas_robots RobotModel with the planning groups and disabled
    collision pairs of a RobotConfig.
    """

    def __init__(self, model: RobotModel, config: RobotConfig) -> None:
        self.model = model
        self.config = config

        self.joints = [j for j in model.iter_joints() if j.is_configurable()]
        self.joint_names = [j.name for j in self.joints]
        self.joint_types = [j.type for j in self.joints]
        self.joint_limits = {j.name: _joint_limits(j) for j in self.joints}
        self._chains: dict[str, KinematicChain] = {}

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def urdf_path(self) -> str:
        return self.config.urdf_path

    @property
    def root_link(self) -> str:
        return self.model.root.name

    @property
    def group_names(self) -> list[str]:
        return list(self.config.planning_groups)

    def has_group(self, name: str) -> bool:
        return name in self.config.planning_groups

    def default_positions(self) -> dict[str, float]:
        """
        Default value of every configurable joint.

        Zero when zero lies inside the joint limits, otherwise the middle of
        the limits.
        """
        defaults = {}
        for name in self.joint_names:
            lower, upper = self.joint_limits[name]
            defaults[name] = 0.0 if lower <= 0.0 <= upper else (lower + upper) / 2.0
        return defaults

    def get_kinematic_chain(self, group: str) -> KinematicChain:
        """
        Resolve a planning group into a KinematicChain.

        Raises:
            RobotError: If the group is not defined or references unknown links
        """
        if group in self._chains:
            return self._chains[group]

        if not self.has_group(group):
            raise RobotError(
                f"Failed to initialize joint model group for planning group '{group}'",
                details={"available": self.group_names},
            )

        group_config = self.config.planning_groups[group]
        chain = self._build_chain(group, group_config)
        self._chains[group] = chain
        return chain

    @staticmethod
    def _find(lookup, name: str):
        try:
            return lookup(name)
        except KeyError:
            return None

    def _build_chain(self, group: str, group_config: PlanningGroupConfig) -> KinematicChain:
        if group_config.joints:
            joints = []
            for joint_name in group_config.joints:
                joint = self._find(self.model.get_joint_by_name, joint_name)
                if joint is None:
                    raise RobotError(
                        f"Planning group '{group}' references unknown joint '{joint_name}'"
                    )
                joints.append(joint)
            base_frame = group_config.base_link or joints[0].parent.link
            tip_link = group_config.tip_link or joints[-1].child.link
        else:
            base_frame = group_config.base_link
            tip_link = group_config.tip_link
            for link_name in (base_frame, tip_link):
                if self._find(self.model.get_link_by_name, link_name) is None:
                    raise RobotError(
                        f"Planning group '{group}' references unknown link '{link_name}'"
                    )
            try:
                joints = list(self.model.iter_joint_chain(base_frame, tip_link))
            except Exception as e:
                raise RobotError(
                    f"Planning group '{group}' has no chain from '{base_frame}' to '{tip_link}'"
                ) from e

        active = [j for j in joints if j.is_configurable()]
        if not active:
            raise RobotError(f"Planning group '{group}' has no active joints")

        return KinematicChain(
            name=group,
            joint_names=tuple(j.name for j in active),
            base_frame=base_frame,
            tip_link=tip_link,
            joint_limits=tuple(self.joint_limits[j.name] for j in active),
        )

    def configuration(self, positions: Mapping[str, float]) -> Configuration:
        """Build a compas Configuration covering every configurable joint."""
        values = [float(positions[name]) for name in self.joint_names]
        return Configuration(values, list(self.joint_types), list(self.joint_names))

    def forward_kinematics(self, positions: Mapping[str, float], link_name: str) -> Frame:
        """
        Pose of a link in the robot's root frame.

        Raises:
            RobotError: If FK computation fails
        """
        if link_name == self.root_link:
            return Frame.worldXY()
        try:
            return self.model.forward_kinematics(
                self.configuration(positions), link_name=link_name
            )
        except Exception as e:
            raise RobotError(f"Forward kinematics failed for link '{link_name}': {e}") from e

    def __repr__(self) -> str:
        return (
            f"RobotDescription(name='{self.name}', "
            f"joints={len(self.joint_names)}, "
            f"groups={self.group_names})"
        )


class RobotState:
    """
    Scratch joint state of a whole robot.

    Holds one value per configurable joint. Solvers build a fresh state for
    every call and never share it.
    """

    def __init__(self, robot: RobotDescription) -> None:
        self.robot = robot
        self._positions = robot.default_positions()

    @property
    def positions(self) -> dict[str, float]:
        return dict(self._positions)

    def set_joint_group_positions(self, chain: KinematicChain, values: Sequence[float]) -> None:
        if len(values) != chain.n_joints:
            raise ValueError(
                f"Expected {chain.n_joints} values for group '{chain.name}', got {len(values)}"
            )
        for name, value in zip(chain.joint_names, values):
            self._positions[name] = float(value)

    def joint_group_positions(self, chain: KinematicChain) -> list[float]:
        return [self._positions[name] for name in chain.joint_names]


def transcribe_seed(
    seed: Mapping[str, float],
    joint_names: Sequence[str],
    defaults: Sequence[float],
) -> list[float]:
    """
    Project a name->value seed onto an ordered joint list.

    Joints missing from ``seed`` keep their value from ``defaults``; names not
    in ``joint_names`` are ignored.
    """
    return [
        float(seed[name]) if name in seed else float(default)
        for name, default in zip(joint_names, defaults)
    ]


def clamp_to_limits(values: Sequence[float], chain: KinematicChain) -> np.ndarray:
    """Clip joint values into the chain's limits."""
    lower = np.array([lo for lo, _ in chain.joint_limits])
    upper = np.array([hi for _, hi in chain.joint_limits])
    return np.clip(np.asarray(values, dtype=float), lower, upper)


class RobotLoader:
    """
    Loads robot descriptions from URDF and YAML files.

    Descriptions loaded by path are cached so several solvers built from the
    same study share one parsed model.
    """

    _shared: dict[str, RobotDescription] = {}

    @classmethod
    def load_from_urdf(cls, urdf_path: str | Path) -> RobotModel:
        """
        Load robot model from URDF file.

        Raises:
            RobotError: If URDF loading fails
        """
        path = Path(urdf_path)

        if not path.exists():
            raise RobotError(f"URDF file not found: {path}")

        try:
            return RobotModel.from_urdf_file(str(path))
        except Exception as e:
            raise RobotError(f"Failed to load URDF from {path}: {e}") from e

    @classmethod
    def load_from_config(cls, config: RobotConfig) -> RobotDescription:
        """Load a RobotDescription from an already validated RobotConfig."""
        model = cls.load_from_urdf(config.urdf_path)
        return RobotDescription(model=model, config=config)

    @classmethod
    def load(cls, description_path: str | Path) -> RobotDescription:
        """
        Load a robot description YAML and its URDF.

        Raises:
            RobotError: If the description or its URDF cannot be loaded
        """
        try:
            config = load_robot_config(description_path)
        except ConfigurationError as e:
            raise RobotError(
                "Failed to initialize robot model",
                details={"robot_description": str(description_path), "error": str(e)},
            ) from e
        return cls.load_from_config(config)

    @classmethod
    def get_shared(cls, description_path: str | Path) -> RobotDescription:
        """Load a robot description once per resolved path."""
        key = str(Path(description_path).resolve())
        if key not in cls._shared:
            cls._shared[key] = cls.load(description_path)
        return cls._shared[key]

    @classmethod
    def clear_shared(cls) -> None:
        cls._shared.clear()
