"""
Loop configuration

Sources, lowest to highest priority:
1. loopguard/config/defaults.yaml (packaged)
2. user YAML file, `loop:` section (or the whole file when it has no such key)
3. keyword overrides

Nested mappings are deep-merged; everything is validated by LoopConfig.
Any failure surfaces as ConfigurationError.

Usage:
    config = load_loop_config("loop.yaml", max_turns=20)
    config = await load_loop_config_async("loop.yaml")
    quick = config.with_overrides(timeout_seconds=60)
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from logger import get_logger
from loopguard.errors import ConfigurationError
from utils.yaml_utils import load_yaml_async, load_yaml_sync

logger = get_logger(__name__)

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"
CONFIG_SECTION = "loop"
DEFAULT_FINISH_TOOL = "complete_task"


class LoopConfig(BaseModel):
    """Settings for one loop run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Budgets
    max_turns: int = Field(default=50, gt=0, description="Turn budget")
    timeout_seconds: float = Field(default=1800.0, gt=0, description="Wall-clock budget")
    cost_limit: Optional[float] = Field(default=None, gt=0, description="Spend budget (USD), None disables")

    # Jury
    score_threshold: float = Field(default=0.0, ge=0.0, le=1.0, description="Threshold mode bar")
    require_pass: bool = Field(default=True, description="Terminate on verdict.passed instead of score")
    evaluate_every_n_turns: int = Field(default=0, ge=0, description="Executor-side evaluation cadence, 0 disables")
    working_directory: str = Field(default=".", description="Workspace handed to the jury")

    # Progress
    stuck_threshold: int = Field(default=3, ge=0, description="Identical outputs before STUCK_DETECTED, 0 disables")
    finish_tool_name: str = Field(default=DEFAULT_FINISH_TOOL, description="Tool that signals completion")
    max_consecutive_errors: int = Field(default=3, gt=0, description="Failed turns in a row before ERROR")

    @field_validator("finish_tool_name", mode="before")
    @classmethod
    def default_blank_finish_tool(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_FINISH_TOOL
        return v

    @field_validator("working_directory", mode="before")
    @classmethod
    def coerce_working_directory(cls, v):
        if isinstance(v, Path):
            return str(v)
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("working_directory must not be blank")
        return v

    @property
    def workspace(self) -> Path:
        return Path(self.working_directory)

    def with_overrides(self, **overrides: Any) -> "LoopConfig":
        """Validated copy with some fields replaced."""
        return _validate({**self.model_dump(), **overrides})


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _section(data: Dict[str, Any], source: Union[str, Path]) -> Dict[str, Any]:
    section = data.get(CONFIG_SECTION, data)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"{source}: '{CONFIG_SECTION}' must be a mapping")
    return section


def _validate(values: Dict[str, Any]) -> LoopConfig:
    try:
        return LoopConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid loop config: {e}") from e


def _merge_sources(
    defaults: Dict[str, Any],
    user: Dict[str, Any],
    overrides: Dict[str, Any],
) -> Dict[str, Any]:
    merged = _deep_merge(_section(defaults, DEFAULTS_PATH), user)
    return _deep_merge(merged, overrides)


def load_loop_config(path: Optional[Union[str, Path]] = None, **overrides: Any) -> LoopConfig:
    """
    Load the loop config.

    Args:
        path: optional user YAML file (must exist when given)
        **overrides: field values that win over every file

    Raises:
        ConfigurationError: unreadable file or invalid values
    """
    try:
        defaults = load_yaml_sync(DEFAULTS_PATH, required=True)
        user = _section(load_yaml_sync(path, required=True), path) if path else {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read loop config: {e}") from e

    config = _validate(_merge_sources(defaults, user, overrides))
    logger.debug(f"Loop config loaded from {path or 'defaults'}: {config.model_dump()}")
    return config


async def load_loop_config_async(path: Optional[Union[str, Path]] = None, **overrides: Any) -> LoopConfig:
    """Async variant of load_loop_config(); files are read with aiofiles."""
    try:
        defaults = await load_yaml_async(DEFAULTS_PATH, required=True)
        user = _section(await load_yaml_async(path, required=True), path) if path else {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read loop config: {e}") from e

    config = _validate(_merge_sources(defaults, user, overrides))
    logger.debug(f"Loop config loaded from {path or 'defaults'}: {config.model_dump()}")
    return config
