"""
EV Charger Troubleshooting Bot

A Telegram bot that walks field technicians through manufacturer fault
packs: deterministic decision trees with per-chat navigation state, plus
a guided service report wizard.
"""

from ev_troubleshooting.domain import (
    DecisionNode,
    DecisionTree,
    Fault,
    FaultPack,
    JumpToMenu,
    Manufacturer,
    NodeTarget,
    Option,
    RouteTo,
)
from ev_troubleshooting.state import (
    ReportState,
    ReportStep,
    SessionState,
)
from ev_troubleshooting.schemas import View, ViewKind
from ev_troubleshooting.execution import DecisionTreeEngine

__all__ = [
    # Domain Layer
    "DecisionNode",
    "DecisionTree",
    "Fault",
    "FaultPack",
    "JumpToMenu",
    "Manufacturer",
    "NodeTarget",
    "Option",
    "RouteTo",
    # State Layer
    "ReportState",
    "ReportStep",
    "SessionState",
    # Schemas
    "View",
    "ViewKind",
    # Execution Layer
    "DecisionTreeEngine",
]
