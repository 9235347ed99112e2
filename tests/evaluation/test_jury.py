"""
SimpleJury, voting strategies and code-based judge tests

Run:
    python -m pytest tests/evaluation/test_jury.py -v
"""

import pytest

from evaluation.jury import (
    ConsensusStrategy,
    Evaluator,
    FileExistsJudge,
    FunctionJudge,
    Judge,
    Jury,
    MajorityVotingStrategy,
    ResponseContainsJudge,
    SimpleJury,
    WeightedAverageStrategy,
)
from evaluation.models import Judgment, JudgmentContext, Verdict


def _context(workspace, output="", **kwargs):
    return JudgmentContext(goal="test", workspace=workspace, agent_output=output, **kwargs)


def _judge(passed, name="j"):
    return FunctionJudge(lambda ctx: passed, name=name)


# ===========================================================================
# Models
# ===========================================================================


class TestModels:
    def test_verdict_shortcuts(self):
        verdict = Verdict.of(True, "WARNING", "mostly fine")
        assert verdict.passed is True
        assert verdict.score == "WARNING"
        assert verdict.reasoning == "mostly fine"
        assert verdict.individual == []

    def test_raw_score_types_preserved(self):
        assert Judgment(passed=True, score=0.8).score == 0.8
        assert Judgment(passed=True, score=True).score is True
        assert Judgment(passed=True, score=4).score == 4

    def test_pass_and_fail_helpers(self):
        assert Judgment.pass_(judge_name="x") == Judgment(passed=True, score=True, judge_name="x")
        assert Judgment.fail().score is False


# ===========================================================================
# Voting strategies
# ===========================================================================


class TestVoting:
    def test_majority(self):
        aggregated = MajorityVotingStrategy().aggregate([
            (Judgment.pass_(), 1.0), (Judgment.pass_(), 1.0), (Judgment.fail(), 1.0),
        ])
        assert aggregated.passed is True
        assert aggregated.score == pytest.approx(2 / 3)

    def test_majority_tie_fails(self):
        aggregated = MajorityVotingStrategy().aggregate([(Judgment.pass_(), 1.0), (Judgment.fail(), 1.0)])
        assert aggregated.passed is False

    def test_weighted_average(self):
        aggregated = WeightedAverageStrategy(pass_threshold=0.75).aggregate([
            (Judgment(passed=True, score=1.0), 3.0),
            (Judgment(passed=False, score=0.0), 1.0),
        ])
        assert aggregated.score == pytest.approx(0.75)
        assert aggregated.passed is True

    def test_weighted_average_normalizes_categories(self):
        aggregated = WeightedAverageStrategy().aggregate([(Judgment(passed=False, score="WARNING"), 1.0)])
        assert aggregated.score == pytest.approx(0.6)

    def test_consensus(self):
        aggregated = ConsensusStrategy().aggregate([
            (Judgment.pass_(judge_name="a"), 1.0), (Judgment.fail(judge_name="b"), 1.0),
        ])
        assert aggregated.passed is False
        assert aggregated.reasoning == "failed: b"

    @pytest.mark.parametrize("strategy", [
        MajorityVotingStrategy(), WeightedAverageStrategy(), ConsensusStrategy(),
    ])
    def test_no_judges_fails(self, strategy):
        assert strategy.aggregate([]).passed is False


# ===========================================================================
# SimpleJury
# ===========================================================================


class TestSimpleJury:
    def test_protocols(self):
        jury = SimpleJury([_judge(True)])
        assert isinstance(jury, Jury)
        assert not isinstance(jury, Evaluator)
        assert isinstance(_judge(True), Judge)

    def test_vote_keeps_individual_judgments(self, tmp_path):
        jury = SimpleJury([_judge(True, "a"), _judge(False, "b"), _judge(True, "c")])
        verdict = jury.vote(_context(tmp_path))
        assert verdict.passed is True
        assert [j.judge_name for j in verdict.individual] == ["a", "b", "c"]

    def test_weighted_entries(self, tmp_path):
        jury = SimpleJury(
            [(_judge(True), 0.2), (_judge(False), 0.8)],
            voting_strategy=WeightedAverageStrategy(),
        )
        verdict = jury.vote(_context(tmp_path))
        assert verdict.score == pytest.approx(0.2)
        assert verdict.passed is False

    def test_raising_judge_counts_as_failure(self, tmp_path):
        def explode(ctx):
            raise RuntimeError("grader crashed")

        jury = SimpleJury([FunctionJudge(explode, name="boom"), _judge(True)])
        verdict = jury.vote(_context(tmp_path))

        failed = verdict.individual[0]
        assert failed.passed is False
        assert failed.score == 0.0
        assert "grader crashed" in failed.reasoning
        assert verdict.passed is False

    def test_judges_property(self):
        judge = _judge(True)
        assert SimpleJury([(judge, 2.0)]).judges == [judge]


# ===========================================================================
# Code-based judges
# ===========================================================================


class TestJudges:
    def test_file_exists_relative_to_workspace(self, tmp_path):
        (tmp_path / "report.md").write_text("# Report")
        judge = FileExistsJudge("report.md")
        assert judge.judge(_context(tmp_path)).passed is True
        assert judge.name == "file_exists:report.md"

    def test_file_missing(self, tmp_path):
        assert FileExistsJudge("missing.md").judge(_context(tmp_path)).passed is False

    def test_file_exists_absolute(self, tmp_path):
        target = tmp_path / "out.txt"
        target.write_text("x")
        assert FileExistsJudge(target).judge(_context(tmp_path / "elsewhere")).passed is True

    def test_response_contains_partial(self, tmp_path):
        judgment = ResponseContainsJudge(["tests", "passed", "merged"]).judge(
            _context(tmp_path, "All Tests PASSED")
        )
        assert judgment.passed is False
        assert judgment.score == pytest.approx(2 / 3)
        assert "merged" in judgment.reasoning

    def test_response_contains_case_sensitive(self, tmp_path):
        judge = ResponseContainsJudge(["Done"], case_sensitive=True)
        assert judge.judge(_context(tmp_path, "Done.")).passed is True
        assert judge.judge(_context(tmp_path, "done.")).passed is False

    def test_response_contains_no_output(self, tmp_path):
        judgment = ResponseContainsJudge(["done"]).judge(_context(tmp_path, None))
        assert judgment.passed is False
        assert judgment.score == 0.0

    def test_function_judge(self, tmp_path):
        judge = FunctionJudge(lambda ctx: ctx.metadata.get("turn", 0) >= 2, name="late")
        assert judge.judge(_context(tmp_path, metadata={"turn": 3})).passed is True
        assert judge.judge(_context(tmp_path, metadata={"turn": 1})).passed is False
