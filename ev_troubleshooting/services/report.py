"""
Report Service - Service Report Wizard

A fixed sequence of prompts that collects site, charger, fault, actions,
outcome and notes, then renders a client-ready service report. Starting a
report leaves the decision tree, so the chat's session state is cleared.
"""

import logging
from typing import List, Optional

from ..domain.models import Manufacturer
from ..infrastructure.kv_store import KeyValueStore
from ..repositories.fault_packs import FaultPackRepository
from ..repositories.session import SessionId, SessionRepository
from ..rendering import Template, render
from ..rendering.notices import notice_view
from ..schemas import callbacks
from ..schemas.views import Button, View, ViewKind
from ..state.models import ReportState, ReportStep
from .exceptions import CallbackDataTooLongError

logger = logging.getLogger(__name__)

ACTION_OPTIONS = [
    "Firmware update performed",
    "Power cycle performed",
    "Checked charger configuration (site specific)",
    "Checked historical logs",
    "Checked passthrough / backend comms",
    "Reseated modules / connections",
    "Replaced component/part",
    "On-site visit required",
    "Escalated to OEM / vendor support",
    "Other (add in notes)",
]

# (button label, value written into the report)
RESOLUTION_OPTIONS = [
    ("✅ Resolved (operational, no active faults)", "Resolved"),
    ("👀 Monitoring (intermittent / watch)", "Monitoring"),
    ("🧰 Site visit required for diagnostics", "Site visit required"),
    ("📈 Escalated to OEM / vendor", "Escalated to OEM"),
]

QUESTIONS = {
    ReportStep.SITE: ("What is the <b>site name</b>?", "Reply with text"),
    ReportStep.CHARGER: ("What is the <b>charger ID / asset ID</b>?", "Reply with text"),
    ReportStep.FAULT: ("Select the <b>fault</b>:", "Or reply with a short description"),
    ReportStep.ACTIONS: ("Select <b>actions performed</b>:", None),
    ReportStep.RESOLUTION: ("Select <b>status/outcome</b>:", None),
    ReportStep.NOTES: ("Add any <b>notes</b> (or press Skip):", None),
}

CANCEL_BUTTON = Button(text="Cancel", callback_data=callbacks.REPORT_CANCEL)


class ReportService:
    def __init__(
        self,
        store: KeyValueStore[ReportState],
        repository: FaultPackRepository,
        sessions: SessionRepository,
    ):
        self._store = store
        self.repository = repository
        self.sessions = sessions

    # ==========================================================================
    # Entry points
    # ==========================================================================

    def start(
        self,
        chat_id: SessionId,
        pack: Optional[Manufacturer] = None,
        fault_title: Optional[str] = None,
    ) -> View:
        current = self.sessions.get(chat_id)
        if pack is None and current is not None:
            pack = current.pack
        self.sessions.clear(chat_id)

        state = ReportState(pack=pack)
        if fault_title:
            state.data.fault_title = fault_title
            state.fault_prefilled = True
        self._save(chat_id, state)

        return self._prompt(state, first=True)

    def start_from_fault(self, chat_id: SessionId, pack: Manufacturer, fault_id: str) -> View:
        fault = self.repository.get_fault(pack, fault_id)
        title = fault.title if fault else f"{pack.label} fault ({fault_id})"
        return self.start(chat_id, pack=pack, fault_title=title)

    def cancel(self, chat_id: SessionId) -> View:
        self.clear(chat_id)
        return notice_view("Report cancelled.", icon="✅", kind=ViewKind.NOTICE)

    def clear(self, chat_id: SessionId):
        self._store.delete(str(chat_id))

    def is_active(self, chat_id: SessionId) -> bool:
        state = self._load(chat_id)
        return state is not None and state.step != ReportStep.DONE

    # ==========================================================================
    # Step handlers
    # ==========================================================================

    def handle_text(self, chat_id: SessionId, text: str) -> Optional[View]:
        """Applies a free-text reply. None when no text is expected."""
        state = self._load(chat_id)
        text = (text or "").strip()
        if state is None or not text:
            return None

        if state.step == ReportStep.SITE:
            state.data.site = text
            return self._advance(chat_id, state, ReportStep.CHARGER)

        if state.step == ReportStep.CHARGER:
            state.data.charger_id = text
            following = ReportStep.ACTIONS if state.fault_prefilled else ReportStep.FAULT
            return self._advance(chat_id, state, following)

        if state.step == ReportStep.FAULT:
            state.data.fault_title = text
            return self._advance(chat_id, state, ReportStep.ACTIONS)

        if state.step == ReportStep.NOTES:
            state.data.notes = text
            return self._finish(chat_id, state)

        return None

    def choose_fault(self, chat_id: SessionId, pack: Manufacturer, fault_id: str) -> Optional[View]:
        state = self._load(chat_id)
        if state is None or state.step != ReportStep.FAULT:
            return None

        fault = self.repository.get_fault(pack, fault_id)
        state.data.fault_title = fault.title if fault else f"{pack.label} fault ({fault_id})"
        return self._advance(chat_id, state, ReportStep.ACTIONS)

    def toggle_action(self, chat_id: SessionId, index: int) -> Optional[View]:
        state = self._load(chat_id)
        if state is None or state.step != ReportStep.ACTIONS:
            return None
        if not 0 <= index < len(ACTION_OPTIONS):
            return None

        label = ACTION_OPTIONS[index]
        if label in state.data.actions:
            state.data.actions.remove(label)
        else:
            state.data.actions.append(label)
        self._save(chat_id, state)

        # Toggles redraw the checklist in place
        return self._prompt(state).model_copy(update={"edit": True})

    def finish_actions(self, chat_id: SessionId) -> Optional[View]:
        state = self._load(chat_id)
        if state is None or state.step != ReportStep.ACTIONS:
            return None
        return self._advance(chat_id, state, ReportStep.RESOLUTION)

    def choose_resolution(self, chat_id: SessionId, index: int) -> Optional[View]:
        state = self._load(chat_id)
        if state is None or state.step != ReportStep.RESOLUTION:
            return None
        if not 0 <= index < len(RESOLUTION_OPTIONS):
            return None

        state.data.resolution = RESOLUTION_OPTIONS[index][1]
        return self._advance(chat_id, state, ReportStep.NOTES)

    def skip_notes(self, chat_id: SessionId) -> Optional[View]:
        state = self._load(chat_id)
        if state is None or state.step != ReportStep.NOTES:
            return None
        state.data.notes = ""
        return self._finish(chat_id, state)

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _advance(self, chat_id: SessionId, state: ReportState, step: ReportStep) -> View:
        state.step = step
        self._save(chat_id, state)
        return self._prompt(state)

    def _finish(self, chat_id: SessionId, state: ReportState) -> View:
        state.step = ReportStep.DONE
        self._save(chat_id, state)
        logger.info(f"Report completed for chat {chat_id}")

        return View(
            kind=ViewKind.REPORT,
            text=render(Template.SERVICE_REPORT, data=state.data),
            keyboard=[
                [Button(text="✅ Start a new report", callback_data=callbacks.REPORT_NEW)],
                [Button(text="⬅️ Back to menu", callback_data=callbacks.MANUFACTURER_MENU)],
            ],
            edit=False,
        )

    def _prompt(self, state: ReportState, first: bool = False) -> View:
        numbered = self._numbered_steps(state)
        step_no = numbered.index(state.step) + 1 if state.step in numbered else None
        question, hint = QUESTIONS[state.step]

        return View(
            kind=ViewKind.REPORT,
            text=render(
                Template.REPORT_PROMPT,
                first=first,
                step_no=step_no,
                total=len(numbered),
                question=question,
                hint=hint,
                prefilled_fault=state.data.fault_title if first and state.fault_prefilled else None,
            ),
            keyboard=self._keyboard(state),
            edit=False,
        )

    def _keyboard(self, state: ReportState) -> List[List[Button]]:
        if state.step == ReportStep.FAULT:
            rows = self._fault_rows(state.pack) if state.pack else []
            return rows + [[CANCEL_BUTTON]]

        if state.step == ReportStep.ACTIONS:
            rows = [
                [Button(
                    text=f"{'✅' if label in state.data.actions else '⬜️'} {label}",
                    callback_data=callbacks.report_action(index),
                )]
                for index, label in enumerate(ACTION_OPTIONS)
            ]
            rows.append([
                Button(text="Done ➡️", callback_data=callbacks.REPORT_ACTIONS_DONE),
                CANCEL_BUTTON,
            ])
            return rows

        if state.step == ReportStep.RESOLUTION:
            rows = [
                [Button(text=label, callback_data=callbacks.report_resolution(index))]
                for index, (label, _) in enumerate(RESOLUTION_OPTIONS)
            ]
            return rows + [[CANCEL_BUTTON]]

        if state.step == ReportStep.NOTES:
            return [
                [Button(text="Skip", callback_data=callbacks.REPORT_SKIP_NOTES)],
                [CANCEL_BUTTON],
            ]

        return [[CANCEL_BUTTON]]

    def _fault_rows(self, pack: Manufacturer) -> List[List[Button]]:
        rows = []
        for fault in self.repository.get_pack(pack).faults:
            try:
                data = callbacks.report_fault(pack, fault.id)
            except CallbackDataTooLongError as e:
                logger.warning(f"Omitting report fault button: {e}")
                continue
            rows.append([Button(text=fault.title, callback_data=data)])
        return rows

    @staticmethod
    def _numbered_steps(state: ReportState) -> List[ReportStep]:
        steps = [ReportStep.SITE, ReportStep.CHARGER, ReportStep.FAULT, ReportStep.ACTIONS, ReportStep.RESOLUTION]
        if state.fault_prefilled:
            steps.remove(ReportStep.FAULT)
        return steps

    def _load(self, chat_id: SessionId) -> Optional[ReportState]:
        state = self._store.get(str(chat_id))
        return state.model_copy(deep=True) if state else None

    def _save(self, chat_id: SessionId, state: ReportState):
        self._store.set(str(chat_id), state)
