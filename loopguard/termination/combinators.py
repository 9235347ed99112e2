"""
Strategy combinators

- all_of: conjunction, stops only when every member votes terminate on the same turn
- any_of: disjunction, the first member (in order) voting terminate wins

Both hold an ordered tuple of strategy instances. Order matters:
all_of asks every member on every call so stateful members (stagnation)
observe each turn; any_of short-circuits, so members after the first
terminating one are not asked on that turn.
"""

from typing import TYPE_CHECKING, Iterable, Optional, Tuple

from logger import get_logger
from loopguard.errors import ConfigurationError
from loopguard.termination.protocol import TerminationResult, TerminationStrategy

if TYPE_CHECKING:
    from evaluation.models import Verdict
    from loopguard.state.loop_state import LoopState

logger = get_logger(__name__)


def _as_tuple(strategies: Iterable[TerminationStrategy], kind: str) -> Tuple[TerminationStrategy, ...]:
    members = tuple(strategies)
    if not members:
        raise ConfigurationError(f"{kind} requires at least one strategy")
    for member in members:
        if not isinstance(member, TerminationStrategy):
            raise ConfigurationError(
                f"{kind} members must be TerminationStrategy instances, got {type(member).__name__}"
            )
    return members


class AllOfStrategy(TerminationStrategy):
    """
    Terminates iff every member votes terminate.

    Reason and message come from the first member in listed order.
    """

    def __init__(self, strategies: Iterable[TerminationStrategy]):
        self.strategies = _as_tuple(strategies, "all_of")
        self.name = f"all_of({', '.join(s.name for s in self.strategies)})"

    def reset(self) -> None:
        for strategy in self.strategies:
            strategy.reset()

    def check(self, state: "LoopState", verdict: Optional["Verdict"] = None) -> TerminationResult:
        results = [strategy.check(state, verdict) for strategy in self.strategies]

        if all(result.should_terminate for result in results):
            first = results[0]
            logger.info(f"All strategies agree to terminate: {first.reason.value} ({first.message})")
            return first
        return TerminationResult.continue_loop()


class AnyOfStrategy(TerminationStrategy):
    """Terminates on the first member voting terminate."""

    def __init__(self, strategies: Iterable[TerminationStrategy]):
        self.strategies = _as_tuple(strategies, "any_of")
        self.name = f"any_of({', '.join(s.name for s in self.strategies)})"

    def reset(self) -> None:
        for strategy in self.strategies:
            strategy.reset()

    def check(self, state: "LoopState", verdict: Optional["Verdict"] = None) -> TerminationResult:
        for strategy in self.strategies:
            result = strategy.check(state, verdict)
            if result.should_terminate:
                logger.debug(f"{strategy.name} voted terminate: {result.reason.value}")
                return result
        return TerminationResult.continue_loop()


def all_of(strategies: Iterable[TerminationStrategy]) -> AllOfStrategy:
    return AllOfStrategy(strategies)


def any_of(strategies: Iterable[TerminationStrategy]) -> AnyOfStrategy:
    return AnyOfStrategy(strategies)
