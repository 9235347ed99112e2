"""
Interactive question payloads

Built by the tool layer when the agent needs human input mid-loop and handed
to AgentCallback.on_question().
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class Option(BaseModel):
    """A selectable answer."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="Option identifier shown to the user")
    description: str = Field("", description="What choosing this option means")


class Question(BaseModel):
    """
    A prompt for the user.

    Answers are keyed by the question text in the mapping returned from
    on_question().
    """

    model_config = ConfigDict(frozen=True)

    question: str = Field(..., description="Prompt text")
    header: str = Field("", description="Short category label")
    options: List[Option] = Field(default_factory=list)
    allow_free_text: bool = Field(True, description="Accept answers outside the listed options")

    def option_labels(self) -> List[str]:
        return [option.label for option in self.options]
