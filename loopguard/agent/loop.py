"""
TurnLimitedLoop - think / act / observe executor

Runs turns sequentially and asks a termination strategy after each one.
How a turn is executed (model call, tool dispatch) belongs to the TurnRunner;
the loop only owns state, callbacks, evaluation cadence and the stop decision.

Per turn:
    on_thinking
    -> runner.run_turn(message, state, ctx)      (tool calls / partials via ctx)
    -> state update, on_response(text, True)
    -> abort flag folded into state
    -> optional evaluation (every evaluate_every_n_turns)
    -> strategy.check(state, verdict)

Usage:
    loop = TurnLimitedLoop(runner, config=load_loop_config(), callback=LoggingCallback())
    result = loop.run("Write the quarterly report")
    if result.is_success:
        ...

    run = loop.execute("Write it again")       # same loop, fresh strategy and abort flag
    print(run.estimated_cost, run.final_score)
"""

import json
import threading
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
    runtime_checkable,
)

from evaluation.adapter import JuryAdapter
from evaluation.jury import Evaluator, Jury
from evaluation.models import Verdict
from logger import clear_run_context, get_logger, log_execution_time, set_run_context
from loopguard.agent.result import AgentResult, LoopRun
from loopguard.callback.models import Question
from loopguard.callback.protocol import AgentCallback
from loopguard.config.loader import LoopConfig
from loopguard.errors import ConfigurationError, JuryEvaluationError
from loopguard.state.loop_state import LoopState
from loopguard.termination.combinators import any_of
from loopguard.termination.jury import JuryTerminationStrategy
from loopguard.termination.protocol import TerminationResult, TerminationStrategy
from loopguard.termination.strategies import (
    abort_signal,
    cost_limit,
    finish_tool,
    max_turns,
    stuck_detection,
    timeout,
)

logger = get_logger(__name__)


# ==================== Turn boundary ====================


@dataclass(frozen=True)
class TurnOutcome:
    """What a runner reports back for one turn."""

    response: Optional[str]
    tokens_used: int = 0
    cost: float = 0.0


class TurnContext:
    """
    Per-turn handle given to the runner.

    Routes tool calls, partial output and questions through the callback so
    the event order stays consistent, and records which tools were used.
    """

    def __init__(self, callback: AgentCallback, turn: int):
        self._callback = callback
        self.turn = turn
        self._tool_names: List[str] = []

    @property
    def tool_names(self) -> Tuple[str, ...]:
        return tuple(self._tool_names)

    def invoke_tool(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]],
        fn: Callable[..., Any],
    ) -> Any:
        """
        Run a tool between on_tool_call and on_tool_result.

        Args:
            name: tool name
            arguments: keyword arguments for fn
            fn: the tool implementation

        Returns:
            Whatever fn returned. If fn raises, on_tool_result still fires
            with the error text and the exception propagates.
        """
        arguments = arguments or {}
        self._tool_names.append(name)
        self._callback.on_tool_call(name, _serialize(arguments))

        try:
            result = fn(**arguments)
        except Exception as e:
            self._callback.on_tool_result(name, f"Error: {type(e).__name__}: {e}")
            raise

        self._callback.on_tool_result(name, result if isinstance(result, str) else _serialize(result))
        return result

    def emit_partial(self, text: str) -> None:
        self._callback.on_response(text, False)

    def ask(self, questions: Sequence[Question]) -> Dict[str, str]:
        """Ask the user; an empty mapping means nobody answered."""
        return self._callback.on_question(list(questions)) or {}


@runtime_checkable
class TurnRunner(Protocol):
    """Executes a single turn."""

    def run_turn(self, message: str, state: LoopState, ctx: TurnContext) -> TurnOutcome:
        ...


def _serialize(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True, default=str)


# ==================== Executor ====================


def build_default_strategy(
    config: LoopConfig,
    evaluator: Optional[Evaluator] = None,
) -> TerminationStrategy:
    """
    any_of(abort, finish tool, max turns, timeout, [cost], [stuck], [jury]).

    The jury member only evaluates on its own when the executor is not
    already evaluating on a cadence.
    """
    strategies: List[TerminationStrategy] = [
        abort_signal(),
        finish_tool(config.finish_tool_name),
        max_turns(config.max_turns),
        timeout(config.timeout_seconds),
    ]
    if config.cost_limit is not None:
        strategies.append(cost_limit(config.cost_limit))
    if config.stuck_threshold > 0:
        strategies.append(stuck_detection(config.stuck_threshold))
    if evaluator is not None:
        strategies.append(
            JuryTerminationStrategy(
                evaluator,
                config.working_directory,
                score_threshold=config.score_threshold,
                require_pass=config.require_pass,
                self_evaluate=config.evaluate_every_n_turns == 0,
            )
        )
    return any_of(strategies)


class TurnLimitedLoop:
    """
    Sequential loop executor.

    One instance serves one run at a time. Every run starts with a fresh
    strategy: built by strategy_factory when one is given, otherwise the
    configured strategy is reset() so private history never leaks between runs.
    """

    def __init__(
        self,
        runner: TurnRunner,
        *,
        config: Optional[LoopConfig] = None,
        strategy: Optional[TerminationStrategy] = None,
        strategy_factory: Optional[Callable[[], TerminationStrategy]] = None,
        evaluator: Optional[Union[Evaluator, Jury]] = None,
        callback: Optional[AgentCallback] = None,
    ):
        if strategy is not None and strategy_factory is not None:
            raise ConfigurationError("Pass either strategy or strategy_factory, not both")
        if isinstance(evaluator, Jury) and not isinstance(evaluator, Evaluator):
            evaluator = JuryAdapter(evaluator)

        self.runner = runner
        self.config = config or LoopConfig()
        self.evaluator = evaluator
        self.strategy_factory = strategy_factory
        self.strategy = strategy or (
            strategy_factory() if strategy_factory else build_default_strategy(self.config, evaluator)
        )
        self.callback = callback or AgentCallback()
        self._abort_event = threading.Event()
        self._last_run: Optional[LoopRun] = None

    def abort(self) -> None:
        """Ask the loop to stop after the current turn (EXTERNAL_SIGNAL)."""
        self._abort_event.set()

    @property
    def abort_requested(self) -> bool:
        return self._abort_event.is_set()

    @property
    def last_run(self) -> Optional[LoopRun]:
        """Summary of the most recent finished run."""
        return self._last_run

    def run(self, message: str, run_id: Optional[str] = None) -> AgentResult:
        """
        Run turns until the strategy votes terminate.

        Returns:
            AgentResult; on_complete has fired by the time this returns
        """
        return self.execute(message, run_id).result

    def execute(self, message: str, run_id: Optional[str] = None) -> LoopRun:
        """
        Like run(), but also returns the final state and the last verdict.

        Returns:
            LoopRun; also kept as last_run
        """
        self._abort_event.clear()
        strategy = self._strategy_for_run()

        state = LoopState.initial(run_id)
        last_verdict: Optional[Verdict] = None
        set_run_context(run_id=state.run_id)
        logger.info(f"Loop started: run_id={state.run_id}, strategy={strategy.name}")

        result: Optional[AgentResult] = None
        try:
            while result is None:
                state, verdict, result = self._step(message, state, strategy)
                if verdict is not None:
                    last_verdict = verdict

            logger.info(
                f"Loop finished: reason={result.termination_reason.value}, "
                f"turns={result.turns_used}, tokens={state.total_tokens_used}, "
                f"cost=${state.estimated_cost:.4f}"
            )
            self._last_run = LoopRun(
                result=result,
                final_state=state,
                last_verdict=last_verdict,
                duration_seconds=state.elapsed_seconds(),
            )
            return self._last_run
        finally:
            self._notify("on_complete")
            clear_run_context()

    def _strategy_for_run(self) -> TerminationStrategy:
        if self.strategy_factory is not None:
            self.strategy = self.strategy_factory()
        else:
            self.strategy.reset()
        return self.strategy

    # ==================== Turn processing ====================

    def _step(
        self,
        message: str,
        state: LoopState,
        strategy: TerminationStrategy,
    ) -> Tuple[LoopState, Optional[Verdict], Optional[AgentResult]]:
        turn = state.current_turn + 1
        set_run_context(run_id=state.run_id, turn=turn)

        state, failure = self._run_turn(message, state, turn)

        if failure is not None and state.consecutive_failures >= self.config.max_consecutive_errors:
            logger.error(
                f"Stopping after {state.consecutive_failures} consecutive failed turns: {failure}"
            )
            return state, None, AgentResult.from_error(failure, state.current_turn)

        if self._abort_event.is_set() and not state.abort_signalled:
            state = state.abort()

        verdict = self._evaluate(state)
        decision = self._check(strategy, state, verdict)
        if verdict is None:
            verdict = _jury_verdict(strategy)

        if decision.should_terminate:
            logger.info(f"Terminating at turn {state.current_turn}: {decision.message}")
            return state, verdict, AgentResult.from_termination(
                decision, state.last_response, state.current_turn
            )
        return state, verdict, None

    def _run_turn(
        self,
        message: str,
        state: LoopState,
        turn: int,
    ) -> Tuple[LoopState, Optional[BaseException]]:
        ctx = TurnContext(self.callback, turn)
        self._notify("on_thinking")

        try:
            with log_execution_time(f"turn {turn}", logger):
                outcome = self.runner.run_turn(message, state, ctx)
            if not isinstance(outcome, TurnOutcome):
                raise TypeError(
                    f"run_turn() must return TurnOutcome, got {type(outcome).__name__}"
                )
        except Exception as e:
            logger.warning(f"Turn {turn} failed: {type(e).__name__}: {e}", exc_info=True)
            self._notify("on_error", e)
            return state.fail_turn(), e

        state = state.complete_turn(
            tokens_used=outcome.tokens_used,
            cost=outcome.cost,
            response=outcome.response,
            tool_names=ctx.tool_names,
        )
        if outcome.response is not None:
            self._notify("on_response", outcome.response, True)
        return state, None

    def _evaluate(self, state: LoopState) -> Optional[Verdict]:
        every = self.config.evaluate_every_n_turns
        if self.evaluator is None or every <= 0 or state.current_turn % every != 0:
            return None

        try:
            return self.evaluator.evaluate(state, state.last_response, self.config.workspace)
        except JuryEvaluationError as e:
            logger.warning(f"Evaluation unavailable at turn {state.current_turn}: {e}")
            return None
        except Exception as e:
            logger.warning(f"Evaluator raised at turn {state.current_turn}: {e}", exc_info=True)
            self._notify("on_error", e)
            return None

    def _check(
        self,
        strategy: TerminationStrategy,
        state: LoopState,
        verdict: Optional[Verdict],
    ) -> TerminationResult:
        try:
            return strategy.check(state, verdict)
        except Exception as e:
            logger.warning(f"{strategy.name}.check() raised, continuing: {e}", exc_info=True)
            self._notify("on_error", e)
            return TerminationResult.continue_loop()

    def _notify(self, method: str, *args: Any) -> None:
        try:
            getattr(self.callback, method)(*args)
        except Exception as e:
            logger.warning(f"Callback {method} failed: {e}", exc_info=True)


def _jury_verdict(strategy: TerminationStrategy) -> Optional[Verdict]:
    """Verdict a self-evaluating jury member produced this turn, if any."""
    if isinstance(strategy, JuryTerminationStrategy):
        return strategy.last_verdict
    for member in getattr(strategy, "strategies", ()):
        verdict = _jury_verdict(member)
        if verdict is not None:
            return verdict
    return None
