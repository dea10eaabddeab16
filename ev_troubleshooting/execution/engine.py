"""
Engine - Decision Tree Navigation Layer

The DecisionTreeEngine is the deterministic state machine that maps button
presses to positions in authored fault trees. It owns the per-chat history
stack, follows route and menu-jump indirections, and produces the View the
transport shows next.
-----------------------------------------------

Every operation is total: content defects (missing node, option without a
target, dangling route) and session defects (no active fault) come back as
ERROR views with a way out, never as exceptions.

State is always written before the View is returned, so the transport's I/O
never has to succeed for the engine to stay consistent. Each View that
carries `dt:*` buttons is also mirrored onto the message that shows it, which
is how presses on older messages recover after the chat has moved on.
"""

import logging
from typing import List, Optional

from ..domain.models import (
    DecisionNode,
    Fault,
    JumpToMenu,
    Manufacturer,
    NodeRef,
    NodeTarget,
    RouteTo,
)
from ..repositories.fault_packs import FaultPackRepository
from ..repositories.session import SessionId, SessionRepository
from ..rendering import ImageResolver, Template, render
from ..rendering.notices import notice_view
from ..schemas import callbacks
from ..schemas.views import Button, ParseMode, View, ViewKind
from ..services.exceptions import CallbackDataTooLongError
from ..services.menus import MenuService
from ..state.models import SessionState

logger = logging.getLogger(__name__)

FAULT_CARD_SECTIONS = (
    ("Symptoms", "symptoms"),
    ("Safety", "safety"),
    ("Checks", "checks"),
    ("Actions", "actions"),
    ("Escalation", "escalation"),
)


class DecisionTreeEngine:
    def __init__(
        self,
        repository: FaultPackRepository,
        sessions: SessionRepository,
        menus: MenuService,
        images: ImageResolver,
    ):
        self.repository = repository
        self.sessions = sessions
        self.menus = menus
        self.images = images

    # ==========================================================================
    # Operations
    # ==========================================================================

    def open_fault(
        self,
        session_id: SessionId,
        pack: Manufacturer,
        fault_id: str,
        message_id: Optional[int] = None,
    ) -> View:
        fault = self.repository.get_fault(pack, fault_id)
        if fault is None:
            self.sessions.clear(session_id)
            return self._fault_not_found(pack, fault_id)

        logger.info(f"Session {session_id} opened {pack.value}/{fault.id}")
        return self.show_fault_card(session_id, pack, fault, message_id)

    def start(self, session_id: SessionId, message_id: Optional[int] = None) -> View:
        """Enters the active fault's tree at its start node."""
        state = self.sessions.get_active(session_id, message_id)
        if state is None:
            return self._no_active_fault()

        fault = self.repository.get_fault(state.pack, state.fault_id)
        if fault is None:
            return self._fault_not_found(state.pack, state.fault_id)
        if not fault.has_tree:
            return notice_view(
                "No decision tree",
                f"{fault.title} has no guided troubleshooting yet.",
                keyboard=[[self._pack_menu_button(state.pack)]],
            )

        self.sessions.set(session_id, {"history": []})
        return self.render_node(
            session_id,
            state.pack,
            fault,
            NodeTarget(fault.decision_tree.start_node),
            message_id,
        )

    def render_node(
        self,
        session_id: SessionId,
        pack: Manufacturer,
        fault: Fault,
        target: NodeRef,
        message_id: Optional[int] = None,
    ) -> View:
        """
        Resolves target (following indirections), pushes it onto the
        history and builds the node View.
        """
        if isinstance(target, RouteTo):
            return self._follow_route(session_id, pack, target, message_id)

        if isinstance(target, JumpToMenu):
            # Leaves the tree without touching history
            return self.menus.pack_menu(session_id, target.pack, clear_session=False)

        tree = fault.decision_tree
        node = tree.nodes.get(target.node_id) if tree else None
        if node is None:
            logger.warning(f"Decision node not found: {pack.value}/{fault.id}/{target.node_id}")
            return notice_view(
                "Decision node not found",
                target.node_id,
                keyboard=[[self._pack_menu_button(pack)]],
            )

        self._bind(session_id, pack, fault, message_id)
        state = self.sessions.push_history(session_id, node.id)
        view = self._node_view(pack, fault, node)
        if view.image is None:
            # Photos go out as new messages; the originating one keeps its old node
            self._mirror(session_id, message_id, state)
        return view

    def advance(
        self,
        session_id: SessionId,
        option_index: int,
        message_id: Optional[int] = None,
    ) -> View:
        """Follows option option_index of the node currently on screen."""
        state = self.sessions.get_active(session_id, message_id)
        if state is None:
            return self._no_active_fault()

        fault = self.repository.get_fault(state.pack, state.fault_id)
        if fault is None or not fault.has_tree:
            return self._fault_not_found(state.pack, state.fault_id)

        tree = fault.decision_tree
        current_id = state.current_node(tree)
        node = tree.nodes.get(current_id)
        options = node.options if node else []

        if not 0 <= option_index < len(options) or options[option_index].next is None:
            logger.warning(
                f"Option {option_index} has no target on "
                f"{state.pack.value}/{fault.id}/{current_id}"
            )
            return notice_view(
                "Option missing target",
                "This answer is not linked to a next step yet.",
                keyboard=self._tree_exit_rows(),
            ).model_copy(update={"edit": False})

        return self.render_node(
            session_id, state.pack, fault, options[option_index].next, message_id
        )

    def go_back(self, session_id: SessionId, message_id: Optional[int] = None) -> View:
        """
        Steps back one node. From the first node (or the fault card itself)
        the fault card is shown and history is emptied.
        """
        state = self.sessions.get_active(session_id, message_id)
        if state is None:
            return self._no_active_fault()

        fault = self.repository.get_fault(state.pack, state.fault_id)
        if fault is None:
            return self._fault_not_found(state.pack, state.fault_id)

        previous = self.sessions.pop_history(session_id)
        if previous is None:
            return self.show_fault_card(session_id, state.pack, fault, message_id)

        return self.render_node(
            session_id, state.pack, fault, NodeTarget(previous), message_id
        )

    def go_to_pack_menu(self, session_id: SessionId, message_id: Optional[int] = None) -> View:
        state = self.sessions.get_active(session_id, message_id)
        if state is None:
            return self.menus.manufacturer_menu(session_id)
        return self.menus.pack_menu(session_id, state.pack)

    def show_fault_card(
        self,
        session_id: SessionId,
        pack: Manufacturer,
        fault: Fault,
        message_id: Optional[int] = None,
    ) -> View:
        state = self.sessions.set(
            session_id,
            {
                "pack": pack,
                "fault_id": fault.id,
                "history": [],
                "bound_message_id": message_id,
            },
        )
        self._mirror(session_id, message_id, state)

        rows: List[List[Button]] = []
        if fault.has_tree:
            rows.append([Button(text="🧭 Start troubleshooting", callback_data=callbacks.TREE_START)])
        rows.extend(self._report_rows(pack, fault))
        rows.append([Button(text="⬅️ Back", callback_data=callbacks.pack_menu(pack))])

        if fault.response_markdown:
            return View(
                kind=ViewKind.FAULT_CARD,
                text=fault.response_markdown,
                parse_mode=ParseMode.MARKDOWN,
                keyboard=rows,
            )

        sections = [
            (heading, getattr(fault, attr))
            for heading, attr in FAULT_CARD_SECTIONS
            if getattr(fault, attr)
        ]
        return View(
            kind=ViewKind.FAULT_CARD,
            text=render(Template.FAULT_CARD, fault=fault, sections=sections),
            keyboard=rows,
        )

    def bind_message(self, session_id: SessionId, message_id: int):
        """
        Re-binds the session to message_id once the transport shows the
        content there: a new message, or a photo node that fell back to text.
        """
        state = self.sessions.get(session_id)
        if state is None or not state.has_active_fault:
            return
        state = self.sessions.set(session_id, {"bound_message_id": message_id})
        self._mirror(session_id, message_id, state)

    # ==========================================================================
    # State Mutation
    # ==========================================================================

    def _bind(
        self,
        session_id: SessionId,
        pack: Manufacturer,
        fault: Fault,
        message_id: Optional[int],
    ) -> SessionState:
        """Binds the session to (pack, fault). Switching fault starts a fresh history."""
        current = self.sessions.get(session_id)
        patch = {"pack": pack, "fault_id": fault.id}
        if current is None or current.pack != pack or current.fault_id != fault.id:
            patch["history"] = []
        if message_id is not None:
            patch["bound_message_id"] = message_id
        return self.sessions.set(session_id, patch)

    def _mirror(self, session_id: SessionId, message_id: Optional[int], state: SessionState):
        if message_id is None:
            return
        self.sessions.message_states.set(
            session_id, message_id, state.model_copy(update={"bound_message_id": message_id})
        )

    def _follow_route(
        self,
        session_id: SessionId,
        from_pack: Manufacturer,
        route: RouteTo,
        message_id: Optional[int],
    ) -> View:
        target = self.repository.get_fault(route.pack, route.fault_id)
        if target is None or not target.has_tree:
            logger.warning(f"Route target missing or has no tree: {route.pack.value}/{route.fault_id}")
            return notice_view(
                "Route target not found",
                f"{route.pack.value}/{route.fault_id} has no decision tree.",
                keyboard=[[self._pack_menu_button(from_pack)]],
            ).model_copy(update={"edit": False})

        logger.info(f"Session {session_id} routed to {route.pack.value}/{target.id}")
        self.sessions.set(
            session_id,
            {"pack": route.pack, "fault_id": target.id, "history": []},
        )
        return self.render_node(
            session_id,
            route.pack,
            target,
            NodeTarget(target.decision_tree.start_node),
            message_id,
        )

    # ==========================================================================
    # View Construction
    # ==========================================================================

    def _node_view(self, pack: Manufacturer, fault: Fault, node: DecisionNode) -> View:
        image = self.images.resolve(node.image)
        if node.image and image is None:
            logger.warning(f"Unresolvable image on {pack.value}/{fault.id}/{node.id}: {node.image}")

        text = render(
            Template.DECISION_NODE,
            prompt=node.prompt.strip() or "…",
            missing_image=node.image if node.image and image is None else None,
        )

        # Buttons carry the option's position, never its target
        rows = [
            [Button(text=option.label, callback_data=callbacks.tree_option(index))]
            for index, option in enumerate(node.options)
        ]
        rows.extend(self._report_rows(pack, fault))
        rows.extend(self._tree_exit_rows())

        return View(
            kind=ViewKind.NODE,
            text=text,
            parse_mode=ParseMode.MARKDOWN,
            keyboard=rows,
            image=image,
            node_id=node.id,
        )

    def _report_rows(self, pack: Manufacturer, fault: Fault) -> List[List[Button]]:
        try:
            data = callbacks.report_from_fault(pack, fault.id)
        except CallbackDataTooLongError as e:
            logger.warning(f"Omitting report button: {e}")
            return []
        return [[Button(text="🧾 Create report from this fault", callback_data=data)]]

    def _tree_exit_rows(self) -> List[List[Button]]:
        return [
            [Button(text="⬅️ Back", callback_data=callbacks.TREE_BACK)],
            [Button(text="🏠 Pack menu", callback_data=callbacks.TREE_MENU)],
        ]

    def _pack_menu_button(self, pack: Manufacturer) -> Button:
        return Button(text=f"🏠 {pack.label} menu", callback_data=callbacks.pack_menu(pack))

    def _fault_not_found(self, pack: Manufacturer, fault_id: Optional[str]) -> View:
        logger.warning(f"Fault not found: {pack.value}/{fault_id}")
        return notice_view(
            "Fault not found",
            f"{pack.label}: {fault_id}",
            keyboard=[[self._pack_menu_button(pack)]],
        )

    def _no_active_fault(self) -> View:
        return notice_view(
            "No active fault",
            "Open a fault from the menu to continue troubleshooting.",
            keyboard=[[Button(text="⚡ Choose manufacturer", callback_data=callbacks.MANUFACTURER_MENU)]],
        )
