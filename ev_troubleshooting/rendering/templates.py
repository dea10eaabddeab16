"""
Template name constants.

Pure constants - no I/O or file system knowledge. The `.html` / `.md` part
selects escaping: HTML templates are autoescaped for Telegram's HTML parse
mode, Markdown templates pass authored Markdown through untouched.
"""


class Template:
    """Template name constants. Use these instead of raw strings."""

    MANUFACTURER_MENU = "manufacturer_menu.html"
    PACK_MENU = "pack_menu.html"
    FAULT_CARD = "fault_card.html"
    DECISION_NODE = "decision_node.md"
    NOTICE = "notice.html"
    REPORT_PROMPT = "report_prompt.html"
    SERVICE_REPORT = "service_report.html"
