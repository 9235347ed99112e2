"""
JuryTerminationStrategy tests

Run:
    python -m pytest tests/loopguard/termination/test_jury_strategy.py -v
"""

import pytest

from evaluation.adapter import JuryAdapter
from evaluation.jury import ResponseContainsJudge, SimpleJury
from evaluation.models import Verdict
from loopguard.errors import ConfigurationError, JuryEvaluationError
from loopguard.state.loop_state import LoopState
from loopguard.termination.jury import JuryTerminationStrategy
from loopguard.termination.protocol import TerminationReason


# ===========================================================================
# Construction
# ===========================================================================


class TestConstruction:
    def test_missing_jury(self, tmp_path):
        with pytest.raises(ConfigurationError):
            JuryTerminationStrategy(None, tmp_path)

    def test_missing_working_directory(self, make_evaluator):
        with pytest.raises(ConfigurationError):
            JuryTerminationStrategy(make_evaluator(), None)

    @pytest.mark.parametrize("threshold", [-0.1, 1.01])
    def test_threshold_out_of_range(self, make_evaluator, tmp_path, threshold):
        with pytest.raises(ConfigurationError):
            JuryTerminationStrategy(make_evaluator(), tmp_path, score_threshold=threshold)

    def test_object_without_protocol_rejected(self, tmp_path):
        with pytest.raises(ConfigurationError):
            JuryTerminationStrategy(object(), tmp_path)

    def test_jury_wrapped_in_adapter(self, tmp_path):
        jury = SimpleJury([ResponseContainsJudge(["done"])])
        strategy = JuryTerminationStrategy(jury, tmp_path)
        assert isinstance(strategy.evaluator, JuryAdapter)
        assert strategy.evaluator.jury is jury

    def test_evaluator_used_directly(self, make_evaluator, tmp_path):
        evaluator = make_evaluator()
        assert JuryTerminationStrategy(evaluator, tmp_path).evaluator is evaluator


# ===========================================================================
# Require-pass mode
# ===========================================================================


class TestRequirePass:
    def setup_method(self):
        self.state = LoopState.initial().complete_turn(response="r")

    def test_pass_with_low_score_terminates(self, make_evaluator, tmp_path):
        strategy = JuryTerminationStrategy(make_evaluator(), tmp_path)
        result = strategy.check(self.state, Verdict.of(True, 0.1, "good enough"))
        assert result.should_terminate
        assert result.reason is TerminationReason.SCORE_THRESHOLD_MET
        assert result.message == "Jury passed with score 0.10: good enough"

    def test_fail_with_high_score_continues(self, make_evaluator, tmp_path):
        strategy = JuryTerminationStrategy(make_evaluator(), tmp_path)
        assert not strategy.check(self.state, Verdict.of(False, 0.99)).should_terminate


# ===========================================================================
# Threshold mode
# ===========================================================================


class TestThresholdMode:
    def setup_method(self):
        self.state = LoopState.initial().complete_turn(response="r")

    def _strategy(self, make_evaluator, tmp_path):
        return JuryTerminationStrategy(
            make_evaluator(), tmp_path, score_threshold=0.8, require_pass=False
        )

    def test_boundary_inclusive(self, make_evaluator, tmp_path):
        result = self._strategy(make_evaluator, tmp_path).check(self.state, Verdict.of(False, 0.8, "ok"))
        assert result.reason is TerminationReason.SCORE_THRESHOLD_MET
        assert result.message == "Score 0.80 >= threshold 0.80: ok"

    def test_just_below_continues(self, make_evaluator, tmp_path):
        assert not self._strategy(make_evaluator, tmp_path).check(
            self.state, Verdict.of(True, 0.79)
        ).should_terminate

    def test_categorical_score(self, make_evaluator, tmp_path):
        strategy = self._strategy(make_evaluator, tmp_path)
        assert strategy.check(self.state, Verdict.of(False, "PASS")).should_terminate
        assert not strategy.check(self.state, Verdict.of(False, "WARNING")).should_terminate


# ===========================================================================
# Evaluation and caching
# ===========================================================================


class TestEvaluation:
    def test_supplied_verdict_skips_evaluation(self, make_evaluator, tmp_path):
        evaluator = make_evaluator([Verdict.of(False, 0.0)])
        strategy = JuryTerminationStrategy(evaluator, tmp_path)
        supplied = Verdict.of(True, 1.0)

        strategy.check(LoopState.initial(), supplied)

        assert evaluator.calls == []
        assert strategy.last_verdict is supplied

    def test_evaluates_when_missing(self, make_evaluator, tmp_path):
        verdict = Verdict.of(True, 1.0)
        evaluator = make_evaluator([verdict])
        strategy = JuryTerminationStrategy(evaluator, tmp_path)
        state = LoopState.initial().complete_turn(response="hello")

        result = strategy.check(state)

        assert result.should_terminate
        assert evaluator.calls == [(1, "hello", tmp_path)]
        assert strategy.last_verdict is verdict

    def test_no_verdict_continues_and_clears_cache(self, make_evaluator, tmp_path):
        evaluator = make_evaluator([Verdict.of(False, 0.2), None])
        strategy = JuryTerminationStrategy(evaluator, tmp_path)

        strategy.check(LoopState.initial())
        assert strategy.last_verdict is not None

        result = strategy.check(LoopState.initial())
        assert not result.should_terminate
        assert strategy.last_verdict is None

    def test_evaluation_error_treated_as_no_verdict(self, make_evaluator, tmp_path):
        evaluator = make_evaluator(error=JuryEvaluationError("jury down"))
        strategy = JuryTerminationStrategy(evaluator, tmp_path)

        assert not strategy.check(LoopState.initial()).should_terminate
        assert strategy.last_verdict is None

    def test_unexpected_evaluator_error_treated_as_no_verdict(self, make_evaluator, tmp_path):
        evaluator = make_evaluator(error=RuntimeError("connection reset"))
        strategy = JuryTerminationStrategy(evaluator, tmp_path)

        result = strategy.check(LoopState.initial().complete_turn(response="draft"))

        assert not result.should_terminate
        assert strategy.last_verdict is None
        assert len(evaluator.calls) == 1

    def test_reset_clears_last_verdict(self, make_evaluator, tmp_path):
        strategy = JuryTerminationStrategy(make_evaluator([Verdict.of(False, 0.4)]), tmp_path)
        strategy.check(LoopState.initial())
        assert strategy.last_verdict is not None

        strategy.reset()
        assert strategy.last_verdict is None

    def test_self_evaluate_disabled(self, make_evaluator, tmp_path):
        evaluator = make_evaluator([Verdict.of(True, 1.0)])
        strategy = JuryTerminationStrategy(evaluator, tmp_path, self_evaluate=False)

        assert not strategy.check(LoopState.initial()).should_terminate
        assert evaluator.calls == []

    def test_end_to_end_with_simple_jury(self, tmp_path):
        jury = SimpleJury([ResponseContainsJudge(["report", "done"])])
        strategy = JuryTerminationStrategy(jury, tmp_path)

        not_yet = LoopState.initial().complete_turn(response="writing the report")
        assert not strategy.check(not_yet).should_terminate

        finished = not_yet.complete_turn(response="Report done")
        assert strategy.check(finished).reason is TerminationReason.SCORE_THRESHOLD_MET
