"""
Loop configuration
"""

from loopguard.config.loader import LoopConfig, load_loop_config, load_loop_config_async

__all__ = [
    "LoopConfig",
    "load_loop_config",
    "load_loop_config_async",
]
