"""
LoggingCallback - write loop events to the loopguard logger
"""

import logging
from typing import Dict, List, Optional

from logger import get_logger
from loopguard.callback.models import Question
from loopguard.callback.protocol import AgentCallback

MAX_PREVIEW_CHARS = 200


def _preview(text: Optional[str], limit: int = MAX_PREVIEW_CHARS) -> str:
    if text is None:
        return ""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}... ({len(text)} chars)"


class LoggingCallback(AgentCallback):
    """
    Logs every event; payloads are truncated to max_chars.

    Partial responses are logged at DEBUG, errors at ERROR, the rest at INFO.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, max_chars: int = MAX_PREVIEW_CHARS):
        self.logger = logger or get_logger("callback")
        self.max_chars = max_chars

    def on_thinking(self) -> None:
        self.logger.info("Thinking")

    def on_tool_call(self, tool_name: str, tool_input: str) -> None:
        self.logger.info(f"Tool call: {tool_name} {_preview(tool_input, self.max_chars)}")

    def on_tool_result(self, tool_name: str, tool_result: str) -> None:
        self.logger.info(f"Tool result: {tool_name} -> {_preview(tool_result, self.max_chars)}")

    def on_response(self, text: str, is_final: bool) -> None:
        if is_final:
            self.logger.info(f"Response: {_preview(text, self.max_chars)}")
        else:
            self.logger.debug(f"Partial response: {_preview(text, self.max_chars)}")

    def on_question(self, questions: List[Question]) -> Dict[str, str]:
        for question in questions:
            self.logger.info(
                f"Question: {_preview(question.question, self.max_chars)} "
                f"options={question.option_labels()}"
            )
        return {}

    def on_error(self, error: BaseException) -> None:
        self.logger.error(f"Turn error: {type(error).__name__}: {error}")

    def on_complete(self) -> None:
        self.logger.info("Run complete")
