"""
AgentCallback - loop event observer

Every method has a no-op default, so subclasses override only what they need.

Firing order within one turn:
    on_thinking
    -> on_tool_call(name, args) -> on_tool_result(name, result)   (per tool call)
    -> on_response(chunk, False) ...                              (partials)
    -> on_response(text, True)                                    (at most once)

on_error fires for turn-level faults and does not stop the loop by itself.
on_complete fires exactly once per run, after everything else.
"""

from typing import Dict, List

from loopguard.callback.models import Question


class AgentCallback:
    """Base observer with no-op defaults."""

    def on_thinking(self) -> None:
        """The agent started deliberating on a turn."""

    def on_tool_call(self, tool_name: str, tool_input: str) -> None:
        """
        A tool is about to run.

        Args:
            tool_name: tool name
            tool_input: arguments as JSON with sorted keys
        """

    def on_tool_result(self, tool_name: str, tool_result: str) -> None:
        """The tool announced by the matching on_tool_call() returned."""

    def on_response(self, text: str, is_final: bool) -> None:
        """Response text for the turn; is_final marks the complete text."""

    def on_question(self, questions: List[Question]) -> Dict[str, str]:
        """
        The agent needs human input.

        Returns:
            question text -> answer. An empty mapping means unanswered.
        """
        return {}

    def on_error(self, error: BaseException) -> None:
        """A recoverable fault occurred during a turn."""

    def on_complete(self) -> None:
        """The run finished, whatever the outcome."""
