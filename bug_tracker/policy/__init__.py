"""
Policy layer: who may do what, and which status moves are allowed.
"""

from .access import Decision, Operation, decide, enforce, require_active
from .transitions import TransitionTable, get_default_transitions

__all__ = [
    "Decision",
    "Operation",
    "TransitionTable",
    "decide",
    "enforce",
    "require_active",
    "get_default_transitions",
]
