"""
Menu Service

Manufacturer selection and per-pack fault menus. Every menu leaves the
decision tree, so showing one clears the chat's session state.
"""

import logging
from typing import List

from ..domain.models import Fault, Manufacturer
from ..repositories.fault_packs import FaultPackRepository
from ..repositories.session import SessionId, SessionRepository
from ..rendering import Template, render
from ..schemas import callbacks
from ..schemas.views import Button, View, ViewKind
from .exceptions import CallbackDataTooLongError

logger = logging.getLogger(__name__)


class MenuService:
    def __init__(
        self,
        repository: FaultPackRepository,
        sessions: SessionRepository,
        menu_size: int = 8,
    ):
        self.repository = repository
        self.sessions = sessions
        self.menu_size = menu_size

    def manufacturer_menu(self, session_id: SessionId) -> View:
        self.sessions.clear(session_id)

        rows = [
            [Button(text=m.label, callback_data=callbacks.pack_menu(m))]
            for m in Manufacturer
        ]
        rows.append([Button(text="🧾 Build a report (/report)", callback_data=callbacks.REPORT_NEW)])
        rows.append([Button(text="🔁 Reset", callback_data=callbacks.RESET)])

        return View(
            kind=ViewKind.MENU,
            text=render(Template.MANUFACTURER_MENU),
            keyboard=rows,
        )

    def pack_menu(
        self,
        session_id: SessionId,
        pack: Manufacturer,
        full: bool = False,
        clear_session: bool = True,
    ) -> View:
        """
        Short menu: `common` faults first, then authored order, capped at
        menu_size with an "All faults" button. Full menu: every fault.

        Menu-jump nodes inside a tree pass clear_session=False so the jump
        leaves history as it was.
        """
        if clear_session:
            self.sessions.clear(session_id)

        faults = self.repository.get_pack(pack).faults
        shown = faults if full else self._short_list(faults)

        rows = self.fault_buttons(pack, shown)
        if not faults:
            rows.append([Button(text="⚠️ No faults loaded (check /debug)", callback_data=callbacks.NOOP)])
        elif len(shown) < len(faults):
            rows.append([
                Button(
                    text=f"📋 All faults ({len(faults)})",
                    callback_data=callbacks.pack_all(pack),
                )
            ])

        rows.append([Button(text="🧾 Build a report (/report)", callback_data=callbacks.REPORT_NEW)])
        rows.append([Button(text="⬅️ Back to Manufacturer", callback_data=callbacks.MANUFACTURER_MENU)])
        rows.append([Button(text="🔁 Reset", callback_data=callbacks.RESET)])

        return View(
            kind=ViewKind.MENU,
            text=render(
                Template.PACK_MENU,
                pack_label=pack.label,
                total=len(faults),
                shown=len(shown),
                full=full,
            ),
            keyboard=rows,
        )

    def fault_buttons(self, pack: Manufacturer, faults: List[Fault]) -> List[List[Button]]:
        rows = []
        for fault in faults:
            try:
                data = callbacks.open_fault(pack, fault.id)
            except CallbackDataTooLongError as e:
                logger.warning(f"Omitting fault button: {e}")
                continue
            rows.append([Button(text=fault.title, callback_data=data)])
        return rows

    def _short_list(self, faults: List[Fault]) -> List[Fault]:
        pinned = [f for f in faults if f.common]
        rest = [f for f in faults if not f.common]
        return (pinned + rest)[: self.menu_size]
