"""
LoopState - snapshot of loop progress

Owned by the loop executor, which replaces it after every turn. Strategies
and callbacks only ever see a frozen snapshot.

Usage:
    state = LoopState.initial()
    state = state.complete_turn(tokens_used=1200, cost=0.007,
                                response="done", tool_names=("Read",))
    if state.max_turns_reached(50):
        ...
"""

import hashlib
import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Sequence, Tuple
from uuid import uuid4


def output_signature(text: Optional[str]) -> str:
    """
    Stable signature of a turn's output, used for stuck detection.

    None and "" share the same signature.
    """
    return hashlib.sha256((text or "").encode("utf-8")).hexdigest()[:16]


@dataclass(frozen=True)
class TurnSnapshot:
    """Record of a single completed turn."""

    turn: int
    tokens_used: int
    cost: float
    had_tool_calls: bool
    output_signature: str
    tool_names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class LoopState:
    """
    Loop progress at decision time.

    Attributes:
        run_id: identifier of the loop run
        current_turn: number of turns completed so far
        started_at: time.monotonic() value when the run started
        total_tokens_used: tokens accumulated across turns
        estimated_cost: spend accumulated across turns (USD)
        abort_signalled: an external cancel was observed
        turn_history: snapshots of completed turns, oldest first
        consecutive_same_output_count: streak of identical outputs without tool calls
        consecutive_failures: streak of turns that raised
        last_response: text of the most recent turn's response
    """

    run_id: str
    current_turn: int = 0
    started_at: float = field(default_factory=time.monotonic)
    total_tokens_used: int = 0
    estimated_cost: float = 0.0
    abort_signalled: bool = False
    turn_history: Tuple[TurnSnapshot, ...] = ()
    consecutive_same_output_count: int = 0
    consecutive_failures: int = 0
    last_response: Optional[str] = None

    @classmethod
    def initial(cls, run_id: Optional[str] = None) -> "LoopState":
        """Create the state for a new run."""
        return cls(run_id=run_id or str(uuid4()))

    # ==================== Transitions ====================

    def complete_turn(
        self,
        tokens_used: int = 0,
        cost: float = 0.0,
        response: Optional[str] = None,
        tool_names: Sequence[str] = (),
    ) -> "LoopState":
        """
        Return the state after a successfully completed turn.

        Args:
            tokens_used: tokens consumed by this turn
            cost: estimated cost of this turn
            response: response text produced by this turn
            tool_names: names of the tools invoked during this turn
        """
        snapshot = TurnSnapshot(
            turn=self.current_turn,
            tokens_used=tokens_used,
            cost=cost,
            had_tool_calls=bool(tool_names),
            output_signature=output_signature(response),
            tool_names=tuple(tool_names),
        )
        history = self.turn_history + (snapshot,)

        return replace(
            self,
            current_turn=self.current_turn + 1,
            total_tokens_used=self.total_tokens_used + tokens_used,
            estimated_cost=self.estimated_cost + cost,
            turn_history=history,
            consecutive_same_output_count=self._same_output_count(history),
            consecutive_failures=0,
            last_response=response,
        )

    def fail_turn(self) -> "LoopState":
        """Return the state after a turn that raised before completing."""
        return replace(
            self,
            current_turn=self.current_turn + 1,
            consecutive_failures=self.consecutive_failures + 1,
        )

    def abort(self) -> "LoopState":
        """Return the state with the abort signal recorded."""
        return replace(self, abort_signalled=True)

    # ==================== Queries ====================

    def elapsed_seconds(self, now: Optional[float] = None) -> float:
        """Seconds since the run started."""
        return (time.monotonic() if now is None else now) - self.started_at

    @property
    def last_turn(self) -> Optional[TurnSnapshot]:
        """Snapshot of the most recent completed turn, if any."""
        return self.turn_history[-1] if self.turn_history else None

    def is_stuck(self, threshold: int) -> bool:
        return self.consecutive_same_output_count >= threshold

    def cost_exceeded(self, limit: float) -> bool:
        return limit > 0 and self.estimated_cost > limit

    def timeout_exceeded(self, timeout_seconds: float) -> bool:
        return self.elapsed_seconds() > timeout_seconds

    def max_turns_reached(self, max_turns: int) -> bool:
        return self.current_turn >= max_turns

    def to_dict(self) -> Dict[str, Any]:
        """Summary for logs and events (history is reduced to its length)."""
        return {
            "run_id": self.run_id,
            "current_turn": self.current_turn,
            "elapsed_seconds": round(self.elapsed_seconds(), 3),
            "total_tokens_used": self.total_tokens_used,
            "estimated_cost": self.estimated_cost,
            "abort_signalled": self.abort_signalled,
            "turns_recorded": len(self.turn_history),
            "consecutive_same_output_count": self.consecutive_same_output_count,
            "consecutive_failures": self.consecutive_failures,
        }

    @staticmethod
    def _same_output_count(history: Tuple[TurnSnapshot, ...]) -> int:
        current = history[-1]

        # Tool calls mean the agent is acting, so the streak resets
        if current.had_tool_calls:
            return 0

        count = 1
        for turn in reversed(history[:-1]):
            if turn.output_signature != current.output_signature or turn.had_tool_calls:
                break
            count += 1
        return count
