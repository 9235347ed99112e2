"""
Loop state

Read-only snapshot of loop progress handed to strategies each turn.
"""

from loopguard.state.loop_state import LoopState, TurnSnapshot, output_signature

__all__ = [
    "LoopState",
    "TurnSnapshot",
    "output_signature",
]
