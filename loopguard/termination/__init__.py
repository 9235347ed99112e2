"""
Termination strategies

Usage:
    from loopguard.termination import any_of, max_turns, timeout, finish_tool

    strategy = any_of([finish_tool("complete_task"), max_turns(50), timeout(1800)])
    result = strategy.check(state)
    if result.should_terminate:
        ...
"""

from loopguard.termination.combinators import AllOfStrategy, AnyOfStrategy, all_of, any_of
from loopguard.termination.jury import JuryTerminationStrategy
from loopguard.termination.protocol import (
    FAILURE_REASONS,
    SUCCESS_REASONS,
    FunctionStrategy,
    TerminationReason,
    TerminationResult,
    TerminationStrategy,
)
from loopguard.termination.strategies import (
    AbortSignalStrategy,
    CostLimitStrategy,
    FinishToolStrategy,
    JuryScoreStrategy,
    MaxTurnsStrategy,
    StagnationStrategy,
    StuckDetectionStrategy,
    TimeoutStrategy,
    abort_signal,
    cost_limit,
    finish_tool,
    jury_score,
    max_turns,
    stagnation,
    stuck_detection,
    timeout,
)

__all__ = [
    # Protocol
    "TerminationReason",
    "TerminationResult",
    "TerminationStrategy",
    "FunctionStrategy",
    "SUCCESS_REASONS",
    "FAILURE_REASONS",
    # Combinators
    "AllOfStrategy",
    "AnyOfStrategy",
    "all_of",
    "any_of",
    # Primitives
    "MaxTurnsStrategy",
    "TimeoutStrategy",
    "CostLimitStrategy",
    "StuckDetectionStrategy",
    "StagnationStrategy",
    "AbortSignalStrategy",
    "FinishToolStrategy",
    "JuryScoreStrategy",
    "max_turns",
    "timeout",
    "cost_limit",
    "stuck_detection",
    "stagnation",
    "abort_signal",
    "finish_tool",
    "jury_score",
    # Jury
    "JuryTerminationStrategy",
]
