"""
Jury - multi-judge evaluation

A jury runs several judges against the same JudgmentContext and folds their
judgments into one Verdict with a voting strategy.

Only the boundary matters to the termination layer (Jury.vote / Evaluator.evaluate);
SimpleJury and the code-based judges below cover the common cheap checks:
- response contains keywords
- file exists in the workspace
- arbitrary predicate over the context

Usage:
    jury = SimpleJury(
        judges=[
            (FileExistsJudge("report.md"), 0.5),
            (ResponseContainsJudge(["done"]), 0.5),
        ],
        voting_strategy=WeightedAverageStrategy(pass_threshold=0.75),
    )
    verdict = jury.vote(context)
"""

from pathlib import Path
from typing import (
    TYPE_CHECKING,
    Callable,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
    runtime_checkable,
)

from evaluation.models import Judgment, JudgmentContext, Verdict
from evaluation.scores import to_normalized
from logger import get_logger

if TYPE_CHECKING:
    from loopguard.state.loop_state import LoopState

logger = get_logger(__name__)


# ==================== Protocols ====================


@runtime_checkable
class Judge(Protocol):
    """A single evaluation criterion."""

    @property
    def name(self) -> str:
        ...

    def judge(self, context: JudgmentContext) -> Judgment:
        ...


@runtime_checkable
class Jury(Protocol):
    """Aggregates several judges into one verdict."""

    def vote(self, context: JudgmentContext) -> Optional[Verdict]:
        ...


@runtime_checkable
class Evaluator(Protocol):
    """
    Evaluation backend as seen by the termination layer.

    Returns None when no evaluation applies; must not raise for that case.
    """

    def evaluate(
        self,
        state: "LoopState",
        response: Optional[str],
        working_directory: Path,
    ) -> Optional[Verdict]:
        ...


# ==================== Voting strategies ====================


class VotingStrategy:
    """Folds individual judgments into the aggregated judgment."""

    def aggregate(self, judgments: Sequence[Tuple[Judgment, float]]) -> Judgment:
        raise NotImplementedError


class MajorityVotingStrategy(VotingStrategy):
    """Passes when more than half of the judges pass (weights ignored)."""

    def aggregate(self, judgments: Sequence[Tuple[Judgment, float]]) -> Judgment:
        if not judgments:
            return Judgment(passed=False, score=0.0, reasoning="no judges", judge_name="majority")

        passes = sum(1 for j, _ in judgments if j.passed)
        total = len(judgments)
        return Judgment(
            passed=passes * 2 > total,
            score=passes / total,
            reasoning=f"{passes}/{total} judges passed",
            judge_name="majority",
        )


class WeightedAverageStrategy(VotingStrategy):
    """Weighted mean of normalized judge scores, passing at pass_threshold."""

    def __init__(self, pass_threshold: float = 0.5):
        self.pass_threshold = pass_threshold

    def aggregate(self, judgments: Sequence[Tuple[Judgment, float]]) -> Judgment:
        total_weight = sum(weight for _, weight in judgments)
        if not judgments or total_weight <= 0:
            return Judgment(passed=False, score=0.0, reasoning="no weighted judges",
                            judge_name="weighted_average")

        weighted = sum(to_normalized(j.score) * weight for j, weight in judgments)
        score = weighted / total_weight
        return Judgment(
            passed=score >= self.pass_threshold,
            score=score,
            reasoning=f"weighted score {score:.2f} (pass at {self.pass_threshold:.2f})",
            judge_name="weighted_average",
        )


class ConsensusStrategy(VotingStrategy):
    """Passes only when every judge passes."""

    def aggregate(self, judgments: Sequence[Tuple[Judgment, float]]) -> Judgment:
        if not judgments:
            return Judgment(passed=False, score=0.0, reasoning="no judges", judge_name="consensus")

        failed = [j.judge_name or "?" for j, _ in judgments if not j.passed]
        passes = len(judgments) - len(failed)
        return Judgment(
            passed=not failed,
            score=passes / len(judgments),
            reasoning="all judges passed" if not failed else f"failed: {', '.join(failed)}",
            judge_name="consensus",
        )


# ==================== SimpleJury ====================


JudgeEntry = Union[Judge, Tuple[Judge, float]]


class SimpleJury:
    """
    Runs judges in order and aggregates with a voting strategy.

    A judge that raises counts as a failed judgment with score 0, so one
    broken judge cannot take the whole jury down.
    """

    def __init__(
        self,
        judges: Sequence[JudgeEntry],
        voting_strategy: Optional[VotingStrategy] = None,
    ):
        self._judges: List[Tuple[Judge, float]] = [
            entry if isinstance(entry, tuple) else (entry, 1.0)
            for entry in judges
        ]
        self.voting_strategy = voting_strategy or MajorityVotingStrategy()

    @property
    def judges(self) -> List[Judge]:
        return [judge for judge, _ in self._judges]

    def vote(self, context: JudgmentContext) -> Verdict:
        results: List[Tuple[Judgment, float]] = []

        for judge, weight in self._judges:
            try:
                judgment = judge.judge(context)
            except Exception as e:
                logger.warning(f"Judge '{judge.name}' failed: {e}")
                judgment = Judgment(
                    passed=False,
                    score=0.0,
                    reasoning=f"judge failed: {e}",
                    judge_name=judge.name,
                )
            results.append((judgment, weight))

        aggregated = self.voting_strategy.aggregate(results)
        return Verdict(aggregated=aggregated, individual=[j for j, _ in results])


# ==================== Code-based judges ====================


class FunctionJudge:
    """Wraps a predicate over the context."""

    def __init__(self, predicate: Callable[[JudgmentContext], bool], name: str = "function"):
        self._predicate = predicate
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def judge(self, context: JudgmentContext) -> Judgment:
        if self._predicate(context):
            return Judgment.pass_(judge_name=self._name)
        return Judgment.fail(reasoning="predicate returned false", judge_name=self._name)


class FileExistsJudge:
    """Passes when a file exists (relative paths resolve against the workspace)."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @property
    def name(self) -> str:
        return f"file_exists:{self.path}"

    def judge(self, context: JudgmentContext) -> Judgment:
        target = self.path if self.path.is_absolute() else context.workspace / self.path
        if target.exists():
            return Judgment.pass_(reasoning=f"{target} exists", judge_name=self.name)
        return Judgment.fail(reasoning=f"{target} not found", judge_name=self.name)


class ResponseContainsJudge:
    """
    Checks the agent output for required keywords.

    Score is the fraction of keywords found; passes only when all are present.
    """

    def __init__(self, keywords: Sequence[str], case_sensitive: bool = False):
        self.keywords = list(keywords)
        self.case_sensitive = case_sensitive

    @property
    def name(self) -> str:
        return "response_contains"

    def judge(self, context: JudgmentContext) -> Judgment:
        response = context.agent_output or ""
        keywords = self.keywords
        if not self.case_sensitive:
            response = response.lower()
            keywords = [k.lower() for k in keywords]

        missing = [k for k in keywords if k not in response]
        found = len(keywords) - len(missing)

        return Judgment(
            passed=not missing,
            score=found / len(keywords) if keywords else 1.0,
            reasoning=f"missing keywords: {', '.join(missing)}" if missing else "all keywords present",
            judge_name=self.name,
        )
