"""
YAML loading helpers.

Sync and async loaders with the same behavior:
- optional files: missing or unreadable -> warning + default
- required files (required=True): missing or malformed -> the error propagates

Only mappings are accepted at the top level; config files are always dicts.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import aiofiles
import yaml

from logger import get_logger

logger = get_logger(__name__)


def _parse(content: str, path: Path, default: Dict[str, Any]) -> Dict[str, Any]:
    data = yaml.safe_load(content)
    if data is None:
        return default
    if not isinstance(data, dict):
        raise yaml.YAMLError(
            f"{path}: top-level YAML must be a mapping, got {type(data).__name__}"
        )
    return data


async def load_yaml_async(
    path: Union[str, Path],
    default: Optional[Dict[str, Any]] = None,
    *,
    required: bool = False,
) -> Dict[str, Any]:
    """
    Load a YAML mapping asynchronously.

    Args:
        path: YAML file path
        default: returned for empty files and, unless required, on failure
        required: propagate FileNotFoundError / OSError / yaml.YAMLError

    Returns:
        Parsed mapping, or default
    """
    if default is None:
        default = {}

    path = Path(path)
    if not path.exists():
        if required:
            raise FileNotFoundError(f"YAML file not found: {path}")
        return default

    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            content = await f.read()
        return _parse(content, path, default)
    except (OSError, yaml.YAMLError) as e:
        if required:
            raise
        logger.warning(f"Failed to load YAML from {path}: {e}")
        return default


def load_yaml_sync(
    path: Union[str, Path],
    default: Optional[Dict[str, Any]] = None,
    *,
    required: bool = False,
) -> Dict[str, Any]:
    """Blocking variant of load_yaml_async(); same arguments and behavior."""
    if default is None:
        default = {}

    path = Path(path)
    if not path.exists():
        if required:
            raise FileNotFoundError(f"YAML file not found: {path}")
        return default

    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
        return _parse(content, path, default)
    except (OSError, yaml.YAMLError) as e:
        if required:
            raise
        logger.warning(f"Failed to load YAML from {path}: {e}")
        return default
