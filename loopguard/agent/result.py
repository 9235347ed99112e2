"""
AgentResult / LoopRun - how a loop run ended

Invariant, checked on construction:
    error is not None  <=>  termination_reason == ERROR  <=>  response is None

Usage:
    result = AgentResult.success("Report written", turns_used=5)
    result.is_success   # True

    result = AgentResult.from_error(RuntimeError("model unavailable"), turns_used=2)
    result.is_error     # True

    run = loop.execute("Write the quarterly report")
    run.result, run.estimated_cost, run.final_score
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

from evaluation.scores import to_normalized
from loopguard.termination.protocol import TerminationReason, TerminationResult

if TYPE_CHECKING:
    from evaluation.models import Verdict
    from loopguard.state.loop_state import LoopState


@dataclass(frozen=True)
class AgentResult:
    """
    Immutable outcome of a loop run.

    Attributes:
        response: final response text, None only when the run failed
        termination_reason: why the loop stopped
        turns_used: number of turns executed
        error: cause of the failure, set only for ERROR
    """

    response: Optional[str]
    termination_reason: TerminationReason
    turns_used: int
    error: Optional[BaseException] = None

    def __post_init__(self):
        if not isinstance(self.termination_reason, TerminationReason):
            raise ValueError(f"invalid termination reason: {self.termination_reason!r}")
        if self.turns_used < 0:
            raise ValueError(f"turns_used must be >= 0, got {self.turns_used}")

        is_error_reason = self.termination_reason == TerminationReason.ERROR
        if (self.error is not None) != is_error_reason:
            raise ValueError("error must be set if and only if termination_reason is ERROR")
        if (self.response is None) != is_error_reason:
            raise ValueError("response must be None if and only if termination_reason is ERROR")

    # ==================== Factories ====================

    @classmethod
    def success(cls, response: str, turns_used: int) -> "AgentResult":
        return cls(response, TerminationReason.FINISH_TOOL_CALLED, turns_used)

    @classmethod
    def max_turns_reached(cls, response: str, turns_used: int) -> "AgentResult":
        return cls(response, TerminationReason.MAX_TURNS_REACHED, turns_used)

    @classmethod
    def timeout(cls, response: str, turns_used: int) -> "AgentResult":
        return cls(response, TerminationReason.TIMEOUT, turns_used)

    @classmethod
    def aborted(cls, response: str, turns_used: int) -> "AgentResult":
        return cls(response, TerminationReason.EXTERNAL_SIGNAL, turns_used)

    @classmethod
    def from_error(cls, error: BaseException, turns_used: int) -> "AgentResult":
        if error is None:
            raise ValueError("error cause must not be None")
        return cls(None, TerminationReason.ERROR, turns_used, error)

    @classmethod
    def from_termination(
        cls,
        result: TerminationResult,
        response: Optional[str],
        turns_used: int,
    ) -> "AgentResult":
        """
        Build the record from a strategy's terminate vote.

        ERROR votes carry no cause of their own, so one is made from the
        vote's message.
        """
        if not result.should_terminate:
            raise ValueError("cannot build an AgentResult from a continue vote")

        if result.reason == TerminationReason.ERROR:
            return cls.from_error(RuntimeError(result.message or "terminated with error"), turns_used)
        return cls(response if response is not None else "", result.reason, turns_used)

    # ==================== Queries ====================

    @property
    def is_success(self) -> bool:
        return self.termination_reason.is_success

    @property
    def is_error(self) -> bool:
        return self.termination_reason.is_error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "response": self.response,
            "termination_reason": self.termination_reason.value,
            "turns_used": self.turns_used,
            "error": str(self.error) if self.error is not None else None,
            "is_success": self.is_success,
        }


@dataclass(frozen=True)
class LoopRun:
    """
    AgentResult plus what the executor knew when the run ended.

    Attributes:
        result: how the run ended
        final_state: LoopState after the last turn
        last_verdict: most recent jury verdict seen during the run, if any
        duration_seconds: wall-clock time of the run
    """

    result: AgentResult
    final_state: "LoopState"
    last_verdict: Optional["Verdict"] = None
    duration_seconds: float = 0.0

    @property
    def run_id(self) -> str:
        return self.final_state.run_id

    @property
    def total_tokens_used(self) -> int:
        return self.final_state.total_tokens_used

    @property
    def estimated_cost(self) -> float:
        return self.final_state.estimated_cost

    @property
    def final_score(self) -> Optional[float]:
        """Normalized score of the last verdict, None when the jury never ruled."""
        if self.last_verdict is None:
            return None
        return to_normalized(self.last_verdict.score)

    @property
    def jury_passed(self) -> bool:
        return self.last_verdict is not None and self.last_verdict.passed

    def to_dict(self) -> Dict[str, Any]:
        data = self.result.to_dict()
        data.update({
            "run_id": self.run_id,
            "total_tokens_used": self.total_tokens_used,
            "estimated_cost": self.estimated_cost,
            "duration_seconds": round(self.duration_seconds, 3),
            "final_score": self.final_score,
            "jury_passed": self.jury_passed,
        })
        return data
