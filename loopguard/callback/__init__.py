"""
Loop event callbacks
"""

from loopguard.callback.composite import CompositeCallback
from loopguard.callback.logging_callback import LoggingCallback
from loopguard.callback.models import Option, Question
from loopguard.callback.protocol import AgentCallback

__all__ = [
    "AgentCallback",
    "CompositeCallback",
    "LoggingCallback",
    "Option",
    "Question",
]
