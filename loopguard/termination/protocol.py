"""
Termination protocol

- TerminationReason: closed set of outcomes a loop can end with
- TerminationResult: a strategy's vote, either continue or terminate(reason, message)
- TerminationStrategy: base class, one operation check(state, verdict)

The executor calls check() once per turn, after the turn's work and any
evaluation have finished. Strategies are advisory: when they cannot decide
(missing data) they vote continue instead of raising.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from evaluation.models import Verdict
    from loopguard.state.loop_state import LoopState


class TerminationReason(str, Enum):
    """
    Why a loop ended.

    Success: FINISH_TOOL_CALLED, SCORE_THRESHOLD_MET, USER_APPROVAL, WORKFLOW_COMPLETE
    Failure: ERROR
    Everything else stopped the loop without success or failure.
    """

    # Success
    FINISH_TOOL_CALLED = "finish_tool_called"  # agent signalled completion
    SCORE_THRESHOLD_MET = "score_threshold_met"  # jury passed / score crossed the bar
    USER_APPROVAL = "user_approval"  # a human approved the result
    WORKFLOW_COMPLETE = "workflow_complete"  # enclosing workflow reports done

    # Budgets and guards
    MAX_TURNS_REACHED = "max_turns_reached"
    TIMEOUT = "timeout"
    COST_LIMIT_EXCEEDED = "cost_limit_exceeded"
    STUCK_DETECTED = "stuck_detected"
    EXTERNAL_SIGNAL = "external_signal"  # user cancel / abort()

    # Failure
    ERROR = "error"

    @property
    def is_success(self) -> bool:
        return self in SUCCESS_REASONS

    @property
    def is_error(self) -> bool:
        return self in FAILURE_REASONS


SUCCESS_REASONS = frozenset({
    TerminationReason.FINISH_TOOL_CALLED,
    TerminationReason.SCORE_THRESHOLD_MET,
    TerminationReason.USER_APPROVAL,
    TerminationReason.WORKFLOW_COMPLETE,
})

FAILURE_REASONS = frozenset({TerminationReason.ERROR})


@dataclass(frozen=True)
class TerminationResult:
    """
    A strategy's vote for the current turn.

    Build with continue_loop() or terminate(); a terminate vote always
    carries a reason, a continue vote never does.

    Attributes:
        should_terminate: whether the loop should stop
        reason: why (None for continue)
        message: human-readable detail (None for continue)
    """

    should_terminate: bool
    reason: Optional[TerminationReason] = None
    message: Optional[str] = None

    def __post_init__(self):
        if self.should_terminate and self.reason is None:
            raise ValueError("terminate result requires a reason")
        if not self.should_terminate and (self.reason is not None or self.message is not None):
            raise ValueError("continue result carries no reason or message")

    @classmethod
    def continue_loop(cls) -> "TerminationResult":
        return _CONTINUE

    @classmethod
    def terminate(
        cls,
        reason: TerminationReason,
        message: Optional[str] = None,
    ) -> "TerminationResult":
        return cls(
            should_terminate=True,
            reason=reason,
            message=message if message is not None else reason.name,
        )


_CONTINUE = TerminationResult(should_terminate=False)


class TerminationStrategy:
    """
    Termination strategy base class.

    Subclasses implement check(). Any strategy-private history (e.g. a
    stagnation counter) lives on the instance, so one instance serves one run;
    reset() clears that history and is a no-op for stateless strategies.
    """

    name: str = "strategy"

    def check(
        self,
        state: "LoopState",
        verdict: Optional["Verdict"] = None,
    ) -> TerminationResult:
        """
        Vote on whether the loop should stop.

        Args:
            state: read-only loop state
            verdict: jury verdict for this turn, None when no evaluation ran

        Returns:
            TerminationResult
        """
        raise NotImplementedError

    def reset(self) -> None:
        """Forget per-run history before the instance is used for a new run."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name})"


StrategyFn = Callable[["LoopState", Optional["Verdict"]], TerminationResult]


class FunctionStrategy(TerminationStrategy):
    """Adapts a plain function (state, verdict) -> TerminationResult."""

    def __init__(self, fn: StrategyFn, name: str = "function"):
        self._fn = fn
        self.name = name

    def check(
        self,
        state: "LoopState",
        verdict: Optional["Verdict"] = None,
    ) -> TerminationResult:
        return self._fn(state, verdict)
