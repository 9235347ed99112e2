"""
Loop execution and outcome
"""

from loopguard.agent.loop import (
    TurnContext,
    TurnLimitedLoop,
    TurnOutcome,
    TurnRunner,
    build_default_strategy,
)
from loopguard.agent.result import AgentResult, LoopRun

__all__ = [
    "AgentResult",
    "LoopRun",
    "TurnContext",
    "TurnLimitedLoop",
    "TurnOutcome",
    "TurnRunner",
    "build_default_strategy",
]
