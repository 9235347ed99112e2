"""
JuryAdapter - jury to evaluator bridge

Turns a LoopState into a JudgmentContext, runs Jury.vote() synchronously and
logs the outcome. This is the Evaluator the termination layer talks to.

Usage:
    adapter = JuryAdapter(jury, jury_name="build-jury")
    verdict = adapter.evaluate(state, response_text, Path("/workspace"))
    if verdict is not None and adapter.should_terminate(verdict):
        ...
"""

import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from evaluation.jury import Jury
from evaluation.models import ExecutionStatus, JudgmentContext, Verdict
from evaluation.scores import to_normalized
from logger import get_logger
from loopguard.errors import ConfigurationError, JuryEvaluationError
from loopguard.state.loop_state import LoopState

logger = get_logger(__name__)


class JuryAdapter:
    """
    Evaluator backed by a Jury.

    Evaluation is a blocking call; asynchronous juries must present a
    synchronous vote() at this boundary.
    """

    def __init__(self, jury: Jury, jury_name: str = "jury"):
        if jury is None:
            raise ConfigurationError("Jury must be set")
        self._jury = jury
        self.jury_name = jury_name

    @property
    def jury(self) -> Jury:
        return self._jury

    def evaluate(
        self,
        state: LoopState,
        response: Optional[str],
        working_directory: Path,
    ) -> Optional[Verdict]:
        """
        Evaluate the current loop state.

        Args:
            state: current loop state
            response: latest response text (None falls back to state.last_response)
            working_directory: workspace for file-based judges

        Returns:
            The jury's verdict, or None when the jury has nothing to say

        Raises:
            JuryEvaluationError: the jury raised
        """
        start = time.perf_counter()
        context = self._build_context(state, Path(working_directory), response)

        logger.debug(
            f"{self.jury_name} evaluation started: run_id={state.run_id}, "
            f"turn={state.current_turn}"
        )

        try:
            verdict = self._jury.vote(context)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error(
                f"{self.jury_name} evaluation failed: run_id={state.run_id}, "
                f"turn={state.current_turn}, error={e or 'unknown error'}, "
                f"duration={duration_ms:.0f}ms"
            )
            raise JuryEvaluationError(
                f"{self.jury_name} evaluation failed: {e}", jury_name=self.jury_name
            ) from e

        duration_ms = (time.perf_counter() - start) * 1000
        if verdict is None:
            logger.debug(f"{self.jury_name} returned no verdict ({duration_ms:.0f}ms)")
            return None

        logger.debug(
            f"{self.jury_name} evaluation completed: run_id={state.run_id}, "
            f"turn={state.current_turn}, passed={verdict.passed}, "
            f"score={self.get_score(verdict):.2f}, duration={duration_ms:.0f}ms"
        )
        return verdict

    def should_terminate(self, verdict: Verdict) -> bool:
        """True when the verdict passes."""
        return verdict.passed

    def get_score(self, verdict: Verdict) -> float:
        """Aggregated score normalized to 0-1."""
        return to_normalized(verdict.score)

    def _build_context(
        self,
        state: LoopState,
        working_directory: Path,
        response: Optional[str],
    ) -> JudgmentContext:
        elapsed = state.elapsed_seconds()
        agent_output = response if response is not None else state.last_response

        return JudgmentContext(
            goal=f"Agent loop turn {state.current_turn}",
            workspace=working_directory,
            agent_output=agent_output,
            execution_time_seconds=elapsed,
            started_at=datetime.now() - timedelta(seconds=elapsed),
            status=ExecutionStatus.CANCELLED if state.abort_signalled else ExecutionStatus.SUCCESS,
            metadata={
                "run_id": state.run_id,
                "turn": state.current_turn,
                "total_tokens": state.total_tokens_used,
                "estimated_cost": state.estimated_cost,
            },
        )
