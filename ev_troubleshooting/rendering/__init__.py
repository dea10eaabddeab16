"""
Rendering - Chat Screen Templates

Jinja2 templates for menus, fault cards, decision nodes and reports, plus
resolution of image references authored in fault packs.
"""

from ev_troubleshooting.rendering.images import ImageResolver
from ev_troubleshooting.rendering.loader import render
from ev_troubleshooting.rendering.templates import Template

__all__ = [
    "ImageResolver",
    "Template",
    "render",
]
