"""
Primitive termination strategies

Each primitive looks at one aspect of the loop and has a factory function:

    max_turns(50)            turn >= 50                       -> MAX_TURNS_REACHED
    timeout(1800)            elapsed > 1800s                  -> TIMEOUT
    cost_limit(2.0)          cost > $2.00                     -> COST_LIMIT_EXCEEDED
    stuck_detection(3)       same output 3 turns, no tools    -> STUCK_DETECTED
    stagnation(3)            same as above, tracked privately -> STUCK_DETECTED
    abort_signal()           abort observed                   -> EXTERNAL_SIGNAL
    finish_tool("done")      last turn called "done"          -> FINISH_TOOL_CALLED
    jury_score(0.8)          supplied verdict passes / >= 0.8 -> SCORE_THRESHOLD_MET

Invalid limits raise ConfigurationError when the strategy is built.
"""

from typing import TYPE_CHECKING, Optional

from evaluation.scores import to_normalized
from logger import get_logger
from loopguard.errors import ConfigurationError
from loopguard.state.loop_state import output_signature
from loopguard.termination.protocol import (
    TerminationReason,
    TerminationResult,
    TerminationStrategy,
)

if TYPE_CHECKING:
    from evaluation.models import Verdict
    from loopguard.state.loop_state import LoopState

logger = get_logger(__name__)


def _require_positive(name: str, value: float) -> None:
    if value is None or value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value!r}")


# ==================== Budgets ====================


class MaxTurnsStrategy(TerminationStrategy):
    """Stops once the turn budget is used up."""

    def __init__(self, max_turns: int):
        _require_positive("max_turns", max_turns)
        self.max_turns = max_turns
        self.name = f"max_turns({max_turns})"

    def check(self, state: "LoopState", verdict: Optional["Verdict"] = None) -> TerminationResult:
        if state.max_turns_reached(self.max_turns):
            logger.warning(f"Max turns reached: {state.current_turn}/{self.max_turns}")
            return TerminationResult.terminate(
                TerminationReason.MAX_TURNS_REACHED,
                f"Reached max turns: {self.max_turns}",
            )
        return TerminationResult.continue_loop()


class TimeoutStrategy(TerminationStrategy):
    """Stops once the wall-clock budget is exceeded."""

    def __init__(self, timeout_seconds: float):
        _require_positive("timeout_seconds", timeout_seconds)
        self.timeout_seconds = timeout_seconds
        self.name = f"timeout({timeout_seconds}s)"

    def check(self, state: "LoopState", verdict: Optional["Verdict"] = None) -> TerminationResult:
        if state.timeout_exceeded(self.timeout_seconds):
            logger.warning(
                f"Timeout exceeded: {state.elapsed_seconds():.0f}s/{self.timeout_seconds}s"
            )
            return TerminationResult.terminate(
                TerminationReason.TIMEOUT,
                f"Timeout exceeded: {self.timeout_seconds}s",
            )
        return TerminationResult.continue_loop()


class CostLimitStrategy(TerminationStrategy):
    """Stops once accumulated spend is above the limit."""

    def __init__(self, limit: float):
        _require_positive("cost limit", limit)
        self.limit = limit
        self.name = f"cost_limit(${limit:.4f})"

    def check(self, state: "LoopState", verdict: Optional["Verdict"] = None) -> TerminationResult:
        if state.cost_exceeded(self.limit):
            logger.warning(f"Cost limit exceeded: ${state.estimated_cost:.4f} > ${self.limit:.4f}")
            return TerminationResult.terminate(
                TerminationReason.COST_LIMIT_EXCEEDED,
                f"Cost ${state.estimated_cost:.4f} > limit ${self.limit:.4f}",
            )
        return TerminationResult.continue_loop()


# ==================== Progress ====================


class StuckDetectionStrategy(TerminationStrategy):
    """Reads the same-output streak the executor maintains on LoopState."""

    def __init__(self, threshold: int):
        _require_positive("stuck threshold", threshold)
        self.threshold = threshold
        self.name = f"stuck_detection({threshold})"

    def check(self, state: "LoopState", verdict: Optional["Verdict"] = None) -> TerminationResult:
        if state.is_stuck(self.threshold):
            logger.warning(f"Agent stuck: same output {state.consecutive_same_output_count} times")
            return TerminationResult.terminate(
                TerminationReason.STUCK_DETECTED,
                f"Agent stuck: same output {self.threshold} times",
            )
        return TerminationResult.continue_loop()


class StagnationStrategy(TerminationStrategy):
    """
    Stagnation detection with private history.

    Hashes state.last_response itself and counts consecutive turns with the
    same output and no tool calls. The counter advances at most once per
    turn, so checking the same turn twice does not inflate it.
    """

    def __init__(self, threshold: int):
        _require_positive("stagnation threshold", threshold)
        self.threshold = threshold
        self.name = f"stagnation({threshold})"
        self._last_signature: Optional[str] = None
        self._last_seen_turn: Optional[int] = None
        self._repeat_count = 0

    @property
    def repeat_count(self) -> int:
        return self._repeat_count

    def reset(self) -> None:
        self._last_signature = None
        self._last_seen_turn = None
        self._repeat_count = 0

    def check(self, state: "LoopState", verdict: Optional["Verdict"] = None) -> TerminationResult:
        if state.current_turn != self._last_seen_turn:
            self._observe(state)

        if self._repeat_count >= self.threshold:
            logger.warning(f"Stagnation detected: {self._repeat_count} identical turns")
            return TerminationResult.terminate(
                TerminationReason.STUCK_DETECTED,
                f"No progress for {self._repeat_count} turns",
            )
        return TerminationResult.continue_loop()

    def _observe(self, state: "LoopState") -> None:
        self._last_seen_turn = state.current_turn
        last_turn = state.last_turn

        if last_turn is not None and last_turn.had_tool_calls:
            self._last_signature = None
            self._repeat_count = 0
            return

        signature = output_signature(state.last_response)
        if signature == self._last_signature:
            self._repeat_count += 1
        else:
            self._last_signature = signature
            self._repeat_count = 1


# ==================== Signals ====================


class AbortSignalStrategy(TerminationStrategy):
    """Stops when the executor has folded an external cancel into the state."""

    name = "abort_signal"

    def check(self, state: "LoopState", verdict: Optional["Verdict"] = None) -> TerminationResult:
        if state.abort_signalled:
            logger.info("Abort signal received")
            return TerminationResult.terminate(
                TerminationReason.EXTERNAL_SIGNAL, "Abort signal received"
            )
        return TerminationResult.continue_loop()


class FinishToolStrategy(TerminationStrategy):
    """Stops when the last turn invoked the finish tool."""

    def __init__(self, tool_name: str = "complete_task"):
        if not tool_name or not tool_name.strip():
            raise ConfigurationError("finish tool name must not be blank")
        self.tool_name = tool_name
        self.name = f"finish_tool({tool_name})"

    def check(self, state: "LoopState", verdict: Optional["Verdict"] = None) -> TerminationResult:
        last_turn = state.last_turn
        if last_turn is not None and self.tool_name in last_turn.tool_names:
            logger.info(f"Finish tool '{self.tool_name}' called")
            return TerminationResult.terminate(
                TerminationReason.FINISH_TOOL_CALLED,
                f"Finish tool '{self.tool_name}' called",
            )
        return TerminationResult.continue_loop()


class JuryScoreStrategy(TerminationStrategy):
    """
    Stops on a supplied verdict that passes or scores at least threshold.

    Never evaluates on its own; without a verdict it votes continue.
    See JuryTerminationStrategy for the self-evaluating variant.
    """

    def __init__(self, threshold: float):
        if threshold is None or not 0.0 <= threshold <= 1.0:
            raise ConfigurationError(f"score threshold must be within [0, 1], got {threshold!r}")
        self.threshold = threshold
        self.name = f"jury_score({threshold})"

    def check(self, state: "LoopState", verdict: Optional["Verdict"] = None) -> TerminationResult:
        if verdict is None:
            return TerminationResult.continue_loop()

        if verdict.passed:
            return TerminationResult.terminate(TerminationReason.SCORE_THRESHOLD_MET, "Jury passed")

        score = to_normalized(verdict.score)
        if score >= self.threshold:
            return TerminationResult.terminate(
                TerminationReason.SCORE_THRESHOLD_MET,
                f"Score {score:.2f} >= threshold {self.threshold:.2f}",
            )
        return TerminationResult.continue_loop()


# ==================== Factories ====================


def max_turns(n: int) -> MaxTurnsStrategy:
    return MaxTurnsStrategy(n)


def timeout(seconds: float) -> TimeoutStrategy:
    return TimeoutStrategy(seconds)


def cost_limit(limit: float) -> CostLimitStrategy:
    return CostLimitStrategy(limit)


def stuck_detection(threshold: int) -> StuckDetectionStrategy:
    return StuckDetectionStrategy(threshold)


def stagnation(threshold: int) -> StagnationStrategy:
    return StagnationStrategy(threshold)


def abort_signal() -> AbortSignalStrategy:
    return AbortSignalStrategy()


def finish_tool(tool_name: str = "complete_task") -> FinishToolStrategy:
    return FinishToolStrategy(tool_name)


def jury_score(threshold: float) -> JuryScoreStrategy:
    return JuryScoreStrategy(threshold)
