"""
Execution Layer - Decision Tree Navigation

Defines the DecisionTreeEngine, the deterministic state machine that moves
a chat through a fault's decision tree and keeps its back-navigation history.
"""

from ev_troubleshooting.execution.engine import DecisionTreeEngine


__all__ = [
    "DecisionTreeEngine",
]
