"""
JuryTerminationStrategy - external evaluation as a termination vote

Two modes, fixed at construction:
- require-pass (default): terminate iff verdict.passed, score ignored
- threshold (require_pass=False): terminate iff to_normalized(score) >= score_threshold

The verdict for a turn is the one supplied by the executor when present;
otherwise the strategy asks its evaluator. Normalized scores are assumed to
lie in [0, 1]; that is the evaluator's contract and is not checked here.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from evaluation.adapter import JuryAdapter
from evaluation.jury import Evaluator, Jury
from evaluation.scores import to_normalized
from logger import get_logger
from loopguard.errors import ConfigurationError, JuryEvaluationError
from loopguard.termination.protocol import (
    TerminationReason,
    TerminationResult,
    TerminationStrategy,
)

if TYPE_CHECKING:
    from evaluation.models import Verdict
    from loopguard.state.loop_state import LoopState

logger = get_logger(__name__)


class JuryTerminationStrategy(TerminationStrategy):
    """
    Terminates with SCORE_THRESHOLD_MET once the jury is satisfied.

    Args:
        jury: an Evaluator, or a Jury (wrapped in JuryAdapter)
        working_directory: workspace handed to the evaluator
        score_threshold: inclusive bar for threshold mode, within [0, 1]
        require_pass: use verdict.passed instead of the score
        jury_name: label used in logs
        self_evaluate: ask the evaluator when no verdict is supplied

    Raises:
        ConfigurationError: missing jury or working directory, threshold out of range
    """

    def __init__(
        self,
        jury: Union[Evaluator, Jury],
        working_directory: Union[str, Path],
        *,
        score_threshold: float = 1.0,
        require_pass: bool = True,
        jury_name: str = "jury",
        self_evaluate: bool = True,
    ):
        if jury is None:
            raise ConfigurationError("Jury must be set")
        if working_directory is None:
            raise ConfigurationError("Working directory must be set")
        if score_threshold is None or not 0.0 <= score_threshold <= 1.0:
            raise ConfigurationError(
                f"score_threshold must be within [0, 1], got {score_threshold!r}"
            )

        if isinstance(jury, Evaluator):
            self._evaluator = jury
        elif isinstance(jury, Jury):
            self._evaluator = JuryAdapter(jury, jury_name=jury_name)
        else:
            raise ConfigurationError(
                f"jury must provide evaluate() or vote(), got {type(jury).__name__}"
            )

        self.working_directory = Path(working_directory)
        self.score_threshold = score_threshold
        self.require_pass = require_pass
        self.jury_name = jury_name
        self.self_evaluate = self_evaluate
        self.name = f"{jury_name}(require_pass)" if require_pass else f"{jury_name}(>={score_threshold})"
        self._last_verdict: Optional["Verdict"] = None

    @property
    def evaluator(self) -> Evaluator:
        return self._evaluator

    @property
    def last_verdict(self) -> Optional["Verdict"]:
        """Verdict used by the most recent check(), None if there was none."""
        return self._last_verdict

    def reset(self) -> None:
        self._last_verdict = None

    def check(self, state: "LoopState", verdict: Optional["Verdict"] = None) -> TerminationResult:
        if verdict is None and self.self_evaluate:
            verdict = self._evaluate(state)
        self._last_verdict = verdict

        if verdict is None:
            return TerminationResult.continue_loop()

        if self.require_pass:
            if verdict.passed:
                score = to_normalized(verdict.score)
                logger.info(f"{self.jury_name} passed at turn {state.current_turn} (score={score:.2f})")
                return TerminationResult.terminate(
                    TerminationReason.SCORE_THRESHOLD_MET,
                    f"Jury passed with score {score:.2f}: {verdict.reasoning}",
                )
            return TerminationResult.continue_loop()

        score = to_normalized(verdict.score)
        if score >= self.score_threshold:
            logger.info(
                f"{self.jury_name} score {score:.2f} met threshold {self.score_threshold:.2f} "
                f"at turn {state.current_turn}"
            )
            return TerminationResult.terminate(
                TerminationReason.SCORE_THRESHOLD_MET,
                f"Score {score:.2f} >= threshold {self.score_threshold:.2f}: {verdict.reasoning}",
            )
        return TerminationResult.continue_loop()

    def _evaluate(self, state: "LoopState") -> Optional["Verdict"]:
        try:
            return self._evaluator.evaluate(state, state.last_response, self.working_directory)
        except JuryEvaluationError as e:
            logger.warning(f"{self.jury_name} unavailable at turn {state.current_turn}: {e}")
            return None
        except Exception as e:
            logger.warning(
                f"{self.jury_name} evaluator raised at turn {state.current_turn}: {e}", exc_info=True
            )
            return None
