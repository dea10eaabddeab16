from typing import List, Optional

from ..schemas.views import Button, View, ViewKind
from .loader import render
from .templates import Template


def notice_view(
    title: str,
    detail: Optional[str] = None,
    keyboard: Optional[List[List[Button]]] = None,
    icon: str = "⚠️",
    kind: ViewKind = ViewKind.ERROR,
) -> View:
    """Short titled message, HTML-escaped."""
    return View(
        kind=kind,
        text=render(Template.NOTICE, icon=icon, title=title, detail=detail),
        keyboard=keyboard or [],
    )
