"""
Evaluation data models

Value objects exchanged between the loop and the jury:
- JudgmentContext: what a judge looks at (workspace, agent output, loop metadata)
- Judgment: one judge's pass flag, raw score and reasoning
- Verdict: the jury's aggregated judgment plus the individual ones

Scores are raw, on whatever scale the judge uses; see evaluation.scores for
normalization to 0-1.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# bool (pass/fail), numeric (any range) or categorical ("PASS" / "WARNING" / "FAIL")
RawScore = Union[bool, int, float, str]


class ExecutionStatus(str, Enum):
    """Status of the agent run at evaluation time"""
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class JudgmentContext(BaseModel):
    """Input handed to every judge of a jury."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    goal: str = Field(..., description="What the agent is trying to achieve")
    workspace: Path = Field(..., description="Working directory the agent operates in")
    agent_output: Optional[str] = Field(None, description="Latest response text")
    execution_time_seconds: float = Field(0.0, description="Elapsed run time")
    started_at: datetime = Field(default_factory=datetime.now)
    status: ExecutionStatus = Field(ExecutionStatus.SUCCESS)
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Loop state metadata")


class Judgment(BaseModel):
    """A single judge's (or the aggregated) outcome."""
    model_config = ConfigDict(frozen=True)

    passed: bool = Field(..., description="Whether the judge is satisfied")
    score: RawScore = Field(..., description="Raw score on the judge's own scale")
    reasoning: str = Field("", description="Free-text rationale")
    judge_name: Optional[str] = Field(None, description="Judge that produced this judgment")

    @classmethod
    def pass_(cls, reasoning: str = "", judge_name: Optional[str] = None) -> "Judgment":
        return cls(passed=True, score=True, reasoning=reasoning, judge_name=judge_name)

    @classmethod
    def fail(cls, reasoning: str = "", judge_name: Optional[str] = None) -> "Judgment":
        return cls(passed=False, score=False, reasoning=reasoning, judge_name=judge_name)


class Verdict(BaseModel):
    """
    Jury verdict

    The aggregated judgment drives termination; individual judgments are kept
    for inspection and reporting.
    """
    model_config = ConfigDict(frozen=True)

    aggregated: Judgment
    individual: List[Judgment] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.aggregated.passed

    @property
    def score(self) -> RawScore:
        return self.aggregated.score

    @property
    def reasoning(self) -> str:
        return self.aggregated.reasoning

    @classmethod
    def of(
        cls,
        passed: bool,
        score: RawScore,
        reasoning: str = "",
    ) -> "Verdict":
        """Shortcut for a verdict without individual judgments."""
        return cls(aggregated=Judgment(passed=passed, score=score, reasoning=reasoning))
