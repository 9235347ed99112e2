"""
Shared helpers
"""

from utils.yaml_utils import load_yaml_async, load_yaml_sync

__all__ = [
    "load_yaml_async",
    "load_yaml_sync",
]
