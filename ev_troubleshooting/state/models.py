"""
State Layer - Runtime Data Models

This module defines the runtime state that tracks a technician's position in
a fault's decision tree (with a back-navigation history stack) and the
progress of the service-report wizard.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..domain.models import DecisionTree, Manufacturer


class SessionState(BaseModel):
    """
    Decision-tree state for one chat.

    `pack` and `fault_id` identify the active fault; both are None while a
    menu is showing. Once a tree has been entered, the top of `history` is
    the node currently displayed.
    """
    pack: Optional[Manufacturer] = None
    fault_id: Optional[str] = None
    history: List[str] = Field(default_factory=list)
    bound_message_id: Optional[int] = None

    @field_validator("history", mode="before")
    @classmethod
    def _coerce_history(cls, value):
        if value is None:
            return []
        if isinstance(value, (str, bytes)):
            return [value]
        return [str(item) for item in value]

    @property
    def has_active_fault(self) -> bool:
        return self.pack is not None and bool(self.fault_id)

    @property
    def top(self) -> Optional[str]:
        if not self.history:
            return None
        return self.history[-1]

    def current_node(self, tree: DecisionTree) -> str:
        """The node on screen: top of history, or the tree's start node."""
        return self.top or tree.start_node


class ReportStep(str, Enum):
    SITE = "site"
    CHARGER = "charger"
    FAULT = "fault"
    ACTIONS = "actions"
    RESOLUTION = "resolution"
    NOTES = "notes"
    DONE = "done"


class ReportData(BaseModel):
    site: str = ""
    charger_id: str = ""
    fault_title: str = ""
    actions: List[str] = Field(default_factory=list)
    resolution: str = ""
    notes: str = ""


class ReportState(BaseModel):
    """
    Progress through the report wizard for one chat.

    `pack` is the pack the technician was working in, used to offer fault
    buttons at the fault step. `fault_prefilled` is set when the wizard was
    started from a fault card and the fault step is skipped.
    """
    step: ReportStep = ReportStep.SITE
    data: ReportData = Field(default_factory=ReportData)
    pack: Optional[Manufacturer] = None
    fault_prefilled: bool = False
