"""
Shared test doubles for loopguard tests.

Nothing here talks to a model, the network or a real jury.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from evaluation.models import Verdict
from loopguard.agent.loop import TurnContext, TurnOutcome
from loopguard.callback.protocol import AgentCallback
from loopguard.state.loop_state import LoopState


class FakeEvaluator:
    """Evaluator returning scripted verdicts (the last one repeats)."""

    def __init__(self, verdicts: Sequence[Optional[Verdict]] = (None,), error: Optional[Exception] = None):
        self.verdicts = list(verdicts)
        self.error = error
        self.calls: List[Tuple[int, Optional[str], Path]] = []

    def evaluate(self, state: LoopState, response: Optional[str], working_directory: Path) -> Optional[Verdict]:
        self.calls.append((state.current_turn, response, working_directory))
        if self.error is not None:
            raise self.error
        index = min(len(self.calls) - 1, len(self.verdicts) - 1)
        return self.verdicts[index]


class RecordingCallback(AgentCallback):
    """Records every callback as (method, *args)."""

    def __init__(self, answers: Optional[Dict[str, str]] = None):
        self.events: List[Tuple[Any, ...]] = []
        self.answers = answers

    def on_thinking(self) -> None:
        self.events.append(("on_thinking",))

    def on_tool_call(self, tool_name: str, tool_input: str) -> None:
        self.events.append(("on_tool_call", tool_name, tool_input))

    def on_tool_result(self, tool_name: str, tool_result: str) -> None:
        self.events.append(("on_tool_result", tool_name, tool_result))

    def on_response(self, text: str, is_final: bool) -> None:
        self.events.append(("on_response", text, is_final))

    def on_question(self, questions):
        self.events.append(("on_question", [q.question for q in questions]))
        if self.answers is None:
            return super().on_question(questions)
        return dict(self.answers)

    def on_error(self, error: BaseException) -> None:
        self.events.append(("on_error", error))

    def on_complete(self) -> None:
        self.events.append(("on_complete",))

    def names(self) -> List[str]:
        return [event[0] for event in self.events]


class ScriptedRunner:
    """
    TurnRunner driven by a list of steps, one per turn (the last one repeats).

    A step is a callable (message, state, ctx) -> TurnOutcome, an exception
    instance to raise, or a plain string response.
    """

    def __init__(self, steps: Sequence[Any]):
        self.steps = list(steps)
        self.turns_run = 0

    def run_turn(self, message: str, state: LoopState, ctx: TurnContext) -> TurnOutcome:
        step = self.steps[min(self.turns_run, len(self.steps) - 1)]
        self.turns_run += 1
        if isinstance(step, BaseException):
            raise step
        if callable(step):
            return step(message, state, ctx)
        return TurnOutcome(response=step, tokens_used=10, cost=0.001)


@pytest.fixture
def make_evaluator():
    return FakeEvaluator


@pytest.fixture
def recording_callback():
    return RecordingCallback()


@pytest.fixture
def make_callback():
    return RecordingCallback


@pytest.fixture
def make_runner():
    return ScriptedRunner


@pytest.fixture
def state_at_turn():
    """Build a LoopState after n completed turns with distinct outputs."""

    def _build(n: int, **kwargs) -> LoopState:
        state = LoopState.initial("test-run")
        for i in range(n):
            state = state.complete_turn(tokens_used=100, cost=0.01, response=f"output {i}", **kwargs)
        return state

    return _build
