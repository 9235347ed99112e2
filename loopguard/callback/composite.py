"""
CompositeCallback - fan out loop events to several observers

Observers are called in the order given. An observer that raises is logged
and skipped, so one broken observer cannot stop the loop or starve the others.
"""

from typing import Dict, Iterable, List

from logger import get_logger
from loopguard.callback.models import Question
from loopguard.callback.protocol import AgentCallback

logger = get_logger(__name__)


class CompositeCallback(AgentCallback):
    def __init__(self, callbacks: Iterable[AgentCallback] = ()):
        self._callbacks: List[AgentCallback] = list(callbacks)

    @property
    def callbacks(self) -> List[AgentCallback]:
        return list(self._callbacks)

    def add(self, callback: AgentCallback) -> None:
        self._callbacks.append(callback)

    def on_thinking(self) -> None:
        self._dispatch("on_thinking")

    def on_tool_call(self, tool_name: str, tool_input: str) -> None:
        self._dispatch("on_tool_call", tool_name, tool_input)

    def on_tool_result(self, tool_name: str, tool_result: str) -> None:
        self._dispatch("on_tool_result", tool_name, tool_result)

    def on_response(self, text: str, is_final: bool) -> None:
        self._dispatch("on_response", text, is_final)

    def on_question(self, questions: List[Question]) -> Dict[str, str]:
        answers: Dict[str, str] = {}
        for callback in self._callbacks:
            try:
                result = callback.on_question(questions) or {}
            except Exception as e:
                logger.warning(f"{type(callback).__name__}.on_question failed: {e}", exc_info=True)
                continue
            # Earlier observers win
            for question, answer in result.items():
                answers.setdefault(question, answer)
        return answers

    def on_error(self, error: BaseException) -> None:
        self._dispatch("on_error", error)

    def on_complete(self) -> None:
        self._dispatch("on_complete")

    def _dispatch(self, method: str, *args) -> None:
        for callback in self._callbacks:
            try:
                getattr(callback, method)(*args)
            except Exception as e:
                logger.warning(f"{type(callback).__name__}.{method} failed: {e}", exc_info=True)
