"""
Domain Layer - Static Data Models

This module defines the core domain model representing the static structure
of manufacturer fault packs. These dataclasses are built from the YAML fault
library at load time and define Packs, Faults, Decision Trees and Nodes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from ..services.exceptions import UnknownManufacturerError


class Manufacturer(str, Enum):
    """
    Closed set of manufacturer keys. The value doubles as the fault pack
    file stem (`<value>.yml`) and as the `<pack>` segment of callback data.
    """

    GENERAL_DC = "general_dc"
    AUTEL = "autel"
    KEMPOWER = "kempower"
    TRITIUM = "tritium"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def legacy_prefix(self) -> str:
        """Prefix of the pre-namespaced fault buttons, e.g. `AUTEL`."""
        return self.value.upper()

    @classmethod
    def parse(cls, raw: str) -> "Manufacturer":
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise UnknownManufacturerError(f"Unknown manufacturer '{raw}'.") from None


_LABELS = {
    Manufacturer.GENERAL_DC: "⚡ General DC",
    Manufacturer.AUTEL: "🔵 Autel",
    Manufacturer.KEMPOWER: "🟢 Kempower",
    Manufacturer.TRITIUM: "🟠 Tritium",
}


# ------------------------------------------------------------------------------
# Node references
#
# An option's `next` is either a real node in the same tree or one of the two
# indirections. They are parsed once at load time so the engine never sniffs
# string prefixes.
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class NodeTarget:
    """A node identifier within the current fault's tree."""
    node_id: str


@dataclass(frozen=True)
class RouteTo:
    """
    Redirect into another fault's tree (possibly in a different pack).

    Attributes:
        pack: Pack holding the target fault.
        fault_id: Target fault; its tree is entered at the start node.
    """
    pack: Manufacturer
    fault_id: str


@dataclass(frozen=True)
class JumpToMenu:
    """Leave the tree and show a pack's fault menu."""
    pack: Manufacturer


NodeRef = Union[NodeTarget, RouteTo, JumpToMenu]


@dataclass
class Option:
    """
    One answer button on a decision node.

    Attributes:
        label: Button text.
        next: Where choosing this option leads. None when the author left
            the target out; reported to the user only if chosen.
    """
    label: str
    next: Optional[NodeRef] = None


@dataclass
class DecisionNode:
    """
    One prompt-and-options step within a decision tree.

    Attributes:
        id: Unique identifier within the tree.
        prompt: Markdown text shown to the technician. May be empty.
        image: Optional image reference (URL or path under the images dir).
        options: Ordered answers. Buttons carry the position, not the target.
    """
    id: str
    prompt: str = ""
    image: Optional[str] = None
    options: List[Option] = field(default_factory=list)


@dataclass
class DecisionTree:
    """
    Branching troubleshooting guide attached to a fault.

    Not assumed acyclic: a node may be reached more than once.

    Attributes:
        start_node: Entry point node ID.
        nodes: Dict mapping node IDs to nodes (O(1) lookup).
    """
    start_node: str
    nodes: Dict[str, DecisionNode] = field(default_factory=dict)


@dataclass
class Fault:
    """
    A named problem with optional guided troubleshooting content.

    Attributes:
        id: Stable identifier, unique within its pack.
        title: Display title.
        response_markdown: Preferred card body (`response.telegram_markdown`).
        symptoms/safety/checks/actions/escalation: Older card sections,
            rendered when no Markdown body is authored.
        common: Pinned to the top of the short pack menu.
        decision_tree: Guided troubleshooting, if authored.
    """
    id: str
    title: str
    response_markdown: Optional[str] = None
    symptoms: List[str] = field(default_factory=list)
    safety: List[str] = field(default_factory=list)
    checks: List[str] = field(default_factory=list)
    actions: List[str] = field(default_factory=list)
    escalation: List[str] = field(default_factory=list)
    common: bool = False
    decision_tree: Optional[DecisionTree] = None

    @property
    def has_tree(self) -> bool:
        return self.decision_tree is not None and bool(self.decision_tree.nodes)


@dataclass
class FaultPack:
    """
    Manufacturer-scoped collection of faults, in authored order.
    """
    manufacturer: Manufacturer
    faults: List[Fault] = field(default_factory=list)

    def get_fault(self, fault_id: str) -> Optional[Fault]:
        fault_id = str(fault_id)
        return next((f for f in self.faults if f.id == fault_id), None)
