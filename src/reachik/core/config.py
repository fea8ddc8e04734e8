"""
Configuration management for reachik.

Handles loading and validation of robot descriptions and IK solver options.
Robot descriptions and study files are YAML; every section is validated into a
pydantic model and validation failures surface as ConfigurationError.
"""

from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from reachik.core.exceptions import ConfigurationError


class PlanningGroupConfig(BaseModel):
    """
    Planning group (kinematic chain) definition.

    A group is either a serial chain between ``base_link`` and ``tip_link`` or
    an explicit ordered list of ``joints``.
    """

    base_link: str | None = None
    tip_link: str | None = None
    joints: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_definition(self) -> "PlanningGroupConfig":
        if not self.joints and not (self.base_link and self.tip_link):
            raise ValueError("a planning group needs base_link and tip_link, or joints")
        return self


class RobotConfig(BaseModel):
    """Robot description model."""

    name: str
    urdf_path: str
    planning_groups: dict[str, PlanningGroupConfig] = Field(default_factory=dict)
    disabled_collisions: list[tuple[str, str]] = Field(default_factory=list)


class IKRoutineConfig(BaseModel):
    """Tuning of the numerical IK routine."""

    model_config = ConfigDict(extra="forbid")

    max_restarts: int = Field(default=10, ge=0)
    max_iterations: int = Field(default=200, gt=0)
    position_tolerance: float = Field(default=1e-3, gt=0)
    orientation_tolerance: float = Field(default=1e-2, gt=0)
    orientation_weight: float = Field(default=0.1, ge=0)
    random_seed: int = 0


class IKSolverConfig(BaseModel):
    """Options accepted by the collision-aware IK solver factory."""

    model_config = ConfigDict(populate_by_name=True)

    planning_group: str
    distance_threshold: float
    robot_description: str | None = None
    collision_mesh_filename: str | None = None
    collision_mesh_frame: str | None = None
    touch_links: list[str] = Field(default_factory=list)
    ik: IKRoutineConfig = Field(default_factory=IKRoutineConfig)

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_frame_key(cls, data: Any) -> Any:
        # Older study files name the mesh frame ``collision_mesh_key``
        if isinstance(data, Mapping) and "collision_mesh_key" in data:
            data = dict(data)
            legacy = data.pop("collision_mesh_key")
            data.setdefault("collision_mesh_frame", legacy)
        return data


class DiscretizedIKSolverConfig(IKSolverConfig):
    """Options accepted by the discretized IK solver factory."""

    discretization_angle: float


def validate_config(model: type[BaseModel], data: Mapping[str, Any]) -> Any:
    """
    Validate a raw mapping into a pydantic model.

    Args:
        model: Pydantic model class
        data: Raw configuration mapping

    Returns:
        Validated model instance

    Raises:
        ConfigurationError: Naming the first offending key
    """
    try:
        return model.model_validate(dict(data))
    except ValidationError as e:
        errors = e.errors()
        keys = [".".join(str(part) for part in err["loc"]) for err in errors]
        first_key = keys[0] if keys else None
        raise ConfigurationError(
            f"Invalid {model.__name__} option '{first_key}': {errors[0]['msg']}"
            if errors
            else f"Invalid {model.__name__}",
            key=first_key,
            details={"keys": keys},
        ) from e


def load_yaml(path: str | Path) -> dict[str, Any]:
    """
    Load a YAML mapping from disk.

    Raises:
        ConfigurationError: If the file is missing, unparsable or not a mapping
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse configuration: {path}",
            details={"error": str(e)},
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration is not a mapping: {path}")
    return data


def load_robot_config(path: str | Path) -> RobotConfig:
    """
    Load a robot description YAML.

    The file holds a ``robot`` section plus optional ``planning_groups`` and
    ``disabled_collisions`` sections. A relative ``urdf_path`` is resolved
    against the YAML file's directory.

    Raises:
        ConfigurationError: If the description is missing or invalid
    """
    path = Path(path)
    data = load_yaml(path)

    if "robot" not in data:
        raise ConfigurationError(
            f"Robot description has no 'robot' section: {path}", key="robot"
        )

    robot_data = dict(data["robot"] or {})
    if "planning_groups" in data:
        robot_data["planning_groups"] = data["planning_groups"] or {}
    if "disabled_collisions" in data:
        robot_data["disabled_collisions"] = data["disabled_collisions"] or []

    config = validate_config(RobotConfig, robot_data)

    urdf_path = Path(config.urdf_path)
    if not urdf_path.is_absolute():
        config.urdf_path = str(path.parent / urdf_path)
    return config
