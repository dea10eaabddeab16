"""
Domain Layer - Static Data Models

Defines the core domain model representing the static structure of
manufacturer fault packs: Packs, Faults, Decision Trees and Nodes.
"""

from ev_troubleshooting.domain.models import (
    DecisionNode,
    DecisionTree,
    Fault,
    FaultPack,
    JumpToMenu,
    Manufacturer,
    NodeRef,
    NodeTarget,
    Option,
    RouteTo,
)

__all__ = [
    "DecisionNode",
    "DecisionTree",
    "Fault",
    "FaultPack",
    "JumpToMenu",
    "Manufacturer",
    "NodeRef",
    "NodeTarget",
    "Option",
    "RouteTo",
]
