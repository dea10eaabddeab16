"""
Schemas - View Descriptors

A View is everything the transport needs to show one screen: the text, how
to parse it, the inline keyboard and an optional image. Services and the
engine only ever produce Views; they never talk to Telegram directly.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ViewKind(str, Enum):
    """
    MENU: Manufacturer or pack fault menu.
    FAULT_CARD: Fault summary with the "start troubleshooting" entry point.
    NODE: A decision-tree node.
    REPORT: A report-wizard prompt or the finished report.
    ERROR: Content or session defect, always with a way out.
    NOTICE: Plain acknowledgement (pong, cancelled).
    """
    MENU = "MENU"
    FAULT_CARD = "FAULT_CARD"
    NODE = "NODE"
    REPORT = "REPORT"
    ERROR = "ERROR"
    NOTICE = "NOTICE"


class ParseMode(str, Enum):
    HTML = "HTML"
    MARKDOWN = "Markdown"


class Button(BaseModel):
    text: str
    callback_data: str


class View(BaseModel):
    kind: ViewKind
    text: str
    parse_mode: Optional[ParseMode] = ParseMode.HTML
    keyboard: List[List[Button]] = Field(default_factory=list)
    image: Optional[str] = Field(
        None,
        description="Resolved image: an http(s) URL or a local file path.",
    )
    node_id: Optional[str] = Field(
        None,
        description="The decision node rendered, for NODE views.",
    )
    edit: bool = Field(
        True,
        description="Whether the transport may edit the originating message in place.",
    )

    @property
    def binds_session(self) -> bool:
        """Views whose buttons depend on session state (dt:* tokens)."""
        return self.kind in (ViewKind.NODE, ViewKind.FAULT_CARD)

    @property
    def callback_data(self) -> List[str]:
        return [button.callback_data for row in self.keyboard for button in row]
