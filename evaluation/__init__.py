"""
Evaluation - judges, juries and verdicts

Core concepts:
- Judgment: one judge's pass / score / reasoning
- Verdict: aggregated judgment plus the individual ones
- Judge: a single criterion (code-based judges live in evaluation.jury)
- Jury: runs judges and aggregates them with a voting strategy
- Evaluator: what the termination layer calls (JuryAdapter wraps a Jury)

Usage:
    from evaluation import SimpleJury, ResponseContainsJudge, JuryAdapter

    jury = SimpleJury([ResponseContainsJudge(["done"])])
    verdict = JuryAdapter(jury).evaluate(state, response, Path("."))
"""

__version__ = "0.1.0"

# Lazy imports avoid an import cycle with loopguard
def __getattr__(name):
    if name in _LAZY_IMPORTS:
        return _LAZY_IMPORTS[name]()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

def _import_models():
    from evaluation.models import (
        ExecutionStatus,
        Judgment,
        JudgmentContext,
        RawScore,
        Verdict,
    )
    return {
        "ExecutionStatus": ExecutionStatus,
        "Judgment": Judgment,
        "JudgmentContext": JudgmentContext,
        "RawScore": RawScore,
        "Verdict": Verdict,
    }

def _import_jury():
    from evaluation import jury
    return {name: getattr(jury, name) for name in _JURY_NAMES}

def _import_adapter():
    from evaluation.adapter import JuryAdapter
    return {"JuryAdapter": JuryAdapter}

def _import_scores():
    from evaluation.scores import to_normalized
    return {"to_normalized": to_normalized}

_MODEL_NAMES = ["ExecutionStatus", "Judgment", "JudgmentContext", "RawScore", "Verdict"]

_JURY_NAMES = [
    "Judge",
    "Jury",
    "Evaluator",
    "VotingStrategy",
    "MajorityVotingStrategy",
    "WeightedAverageStrategy",
    "ConsensusStrategy",
    "SimpleJury",
    "FunctionJudge",
    "FileExistsJudge",
    "ResponseContainsJudge",
]

_LAZY_IMPORTS = {
    # Models
    **{name: (lambda name=name: _import_models()[name]) for name in _MODEL_NAMES},
    # Jury
    **{name: (lambda name=name: _import_jury()[name]) for name in _JURY_NAMES},
    # Adapter
    "JuryAdapter": lambda: _import_adapter()["JuryAdapter"],
    # Scores
    "to_normalized": lambda: _import_scores()["to_normalized"],
}

__all__ = _MODEL_NAMES + _JURY_NAMES + ["JuryAdapter", "to_normalized"]
