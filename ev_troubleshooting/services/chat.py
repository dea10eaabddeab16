"""
Chat Service - Application Orchestration Layer

This service is the entry point for every chat interaction. It classifies
commands, button presses and text replies, and routes them to the Decision
Tree Engine, the menus or the report wizard. It returns Views and leaves
delivery to the transport.
"""

import logging
from typing import Optional

from ..domain.models import Manufacturer
from ..execution.engine import DecisionTreeEngine
from ..rendering.notices import notice_view
from ..schemas import callbacks
from ..schemas.callbacks import (
    Noop,
    OpenFault,
    ReportActionsDone,
    ReportActionToggle,
    ReportCancel,
    ReportFault,
    ReportFromFault,
    ReportNew,
    ReportResolution,
    ReportSkipNotes,
    Reset,
    ShowManufacturers,
    ShowPackMenu,
    TreeBack,
    TreeMenu,
    TreeOption,
    TreeStart,
    parse_callback,
)
from ..schemas.views import Button, View, ViewKind
from .exceptions import UnknownManufacturerError
from .menus import MenuService
from .report import ReportService

logger = logging.getLogger(__name__)

COMMANDS = ("start", "menu", "ping", "report", "cancel", *(m.value for m in Manufacturer))


class ChatService:
    def __init__(
        self,
        engine: DecisionTreeEngine,
        menus: MenuService,
        reports: ReportService,
    ):
        self.engine = engine
        self.menus = menus
        self.reports = reports

    def handle_command(self, chat_id: int, command: str) -> Optional[View]:
        """Slash commands, e.g. `/start`, `/autel`, `/report@EVBot`."""
        name = command.strip().lstrip("/").split("@", 1)[0].split(" ", 1)[0].lower()

        if name in ("start", "menu"):
            self.reports.clear(chat_id)
            return self.menus.manufacturer_menu(chat_id)

        if name == "ping":
            return notice_view("pong", icon="✅", kind=ViewKind.NOTICE)

        if name == "report":
            return self.reports.start(chat_id)

        if name == "cancel":
            self.reports.clear(chat_id)
            self.engine.sessions.clear(chat_id)
            return notice_view("Cancelled.", icon="✅", kind=ViewKind.NOTICE)

        try:
            pack = Manufacturer.parse(name)
        except UnknownManufacturerError:
            logger.debug(f"Unknown command /{name}, showing the manufacturer menu")
            return self.menus.manufacturer_menu(chat_id)
        return self.menus.pack_menu(chat_id, pack)

    def handle_callback(self, chat_id: int, message_id: Optional[int], data: str) -> Optional[View]:
        """
        Routes one button press. Returns None when nothing should be sent
        (noop buttons, unrecognised data).
        """
        command = parse_callback(data)
        if command is None:
            logger.debug(f"Ignoring unknown callback data {data!r} from chat {chat_id}")
            return None

        if isinstance(command, Noop):
            return None

        # --- Navigation ---
        if isinstance(command, (Reset, ShowManufacturers)):
            self.reports.clear(chat_id)
            return self.menus.manufacturer_menu(chat_id)

        if isinstance(command, ShowPackMenu):
            return self.menus.pack_menu(chat_id, command.pack, full=command.full)

        if isinstance(command, OpenFault):
            return self.engine.open_fault(chat_id, command.pack, command.fault_id, message_id)

        # --- Decision tree ---
        if isinstance(command, TreeStart):
            return self.engine.start(chat_id, message_id)

        if isinstance(command, TreeOption):
            return self.engine.advance(chat_id, command.index, message_id)

        if isinstance(command, TreeBack):
            return self.engine.go_back(chat_id, message_id)

        if isinstance(command, TreeMenu):
            return self.engine.go_to_pack_menu(chat_id, message_id)

        # --- Report wizard ---
        if isinstance(command, ReportFromFault):
            return self.reports.start_from_fault(chat_id, command.pack, command.fault_id)

        if isinstance(command, ReportNew):
            return self.reports.start(chat_id)

        if isinstance(command, ReportCancel):
            return self.reports.cancel(chat_id)

        view = None
        if isinstance(command, ReportFault):
            view = self.reports.choose_fault(chat_id, command.pack, command.fault_id)
        elif isinstance(command, ReportActionToggle):
            view = self.reports.toggle_action(chat_id, command.index)
        elif isinstance(command, ReportActionsDone):
            view = self.reports.finish_actions(chat_id)
        elif isinstance(command, ReportResolution):
            view = self.reports.choose_resolution(chat_id, command.index)
        elif isinstance(command, ReportSkipNotes):
            view = self.reports.skip_notes(chat_id)

        return view or self._no_report_in_progress()

    def handle_text(self, chat_id: int, text: str) -> Optional[View]:
        """Free text only matters to the report wizard."""
        return self.reports.handle_text(chat_id, text)

    def message_rendered(
        self,
        chat_id: int,
        view: View,
        originating_message_id: Optional[int],
        message_id: Optional[int],
    ):
        """
        Called by the transport once a View is on screen. When tree content
        landed on a new message (photo, edit failed or not allowed), the
        session is re-bound to that message. Photo nodes are only mirrored
        here, onto whichever message ended up showing them.
        """
        if not view.binds_session or message_id is None:
            return
        if message_id != originating_message_id or view.image:
            self.engine.bind_message(chat_id, message_id)

    def _no_report_in_progress(self) -> View:
        return notice_view(
            "No report in progress",
            "This step belongs to a report that is no longer active.",
            keyboard=[
                [Button(text="🧾 Start a new report", callback_data=callbacks.REPORT_NEW)],
                [Button(text="⬅️ Back to menu", callback_data=callbacks.MANUFACTURER_MENU)],
            ],
        )
