"""
Schemas - Render Contract and Callback Protocol

Defines the View descriptors handed to the transport and the compact
callback-data tokens carried by inline buttons.
"""

from ev_troubleshooting.schemas.views import Button, ParseMode, View, ViewKind
from ev_troubleshooting.schemas.callbacks import Command, parse_callback

__all__ = [
    "Button",
    "Command",
    "ParseMode",
    "View",
    "ViewKind",
    "parse_callback",
]
