import pytest

from ev_troubleshooting.domain.models import (
    DecisionNode,
    DecisionTree,
    Fault,
    FaultPack,
    JumpToMenu,
    Manufacturer,
    NodeTarget,
    Option,
    RouteTo,
)
from ev_troubleshooting.execution.engine import DecisionTreeEngine
from ev_troubleshooting.infrastructure.kv_store import InMemoryKeyValueStore, LRUKeyValueStore
from ev_troubleshooting.rendering.images import ImageResolver
from ev_troubleshooting.repositories.fault_packs import StaticFaultPackRepository
from ev_troubleshooting.repositories.session import MessageStateRepository, SessionRepository
from ev_troubleshooting.services.chat import ChatService
from ev_troubleshooting.services.menus import MenuService
from ev_troubleshooting.services.report import ReportService

CHAT_ID = 4242
N2_IMAGE = "https://cdn.example.com/n2.jpg"


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def _node(node_id, prompt, *options, image=None):
    return DecisionNode(id=node_id, prompt=prompt, image=image, options=list(options))


def build_packs():
    f1 = Fault(
        id="F1",
        title="Emergency stop pressed",
        response_markdown="*F1* emergency stop",
        common=False,
        decision_tree=DecisionTree(
            start_node="n1",
            nodes={
                "n1": _node("n1", "A", Option("Yes", NodeTarget("n2"))),
                "n2": _node("n2", "B", image=N2_IMAGE),
            },
        ),
    )
    f2 = Fault(
        id="F2",
        title="Comms fault",
        common=True,
        checks=["Modem LEDs"],
        decision_tree=DecisionTree(
            start_node="hub",
            nodes={
                "hub": _node(
                    "hub",
                    "Pick a path",
                    Option("Route to general", RouteTo(Manufacturer.GENERAL_DC, "G1")),
                    Option("Autel menu", JumpToMenu(Manufacturer.AUTEL)),
                    Option("Unlinked", None),
                    Option("Ghost", NodeTarget("ghost")),
                    Option("Broken route", RouteTo(Manufacturer.TRITIUM, "nope")),
                    Option("Next", NodeTarget("pictured")),
                ),
                "pictured": _node("pictured", "", Option("Back to hub", NodeTarget("hub")), image="missing.png"),
            },
        ),
    )
    f3 = Fault(
        id="F3",
        title="Over <temperature>",
        symptoms=["Derating"],
        safety=["Isolate first"],
    )
    g1 = Fault(
        id="G1",
        title="No backend comms",
        decision_tree=DecisionTree(
            start_node="g1",
            nodes={"g1": _node("g1", "G", Option("Done", JumpToMenu(Manufacturer.GENERAL_DC)))},
        ),
    )
    return {
        Manufacturer.AUTEL: FaultPack(manufacturer=Manufacturer.AUTEL, faults=[f1, f2, f3]),
        Manufacturer.GENERAL_DC: FaultPack(manufacturer=Manufacturer.GENERAL_DC, faults=[g1]),
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repository():
    return StaticFaultPackRepository(build_packs())


@pytest.fixture
def sessions():
    return SessionRepository(
        store=InMemoryKeyValueStore(),
        message_states=MessageStateRepository(LRUKeyValueStore(max_entries=100)),
    )


@pytest.fixture
def menus(repository, sessions):
    return MenuService(repository=repository, sessions=sessions, menu_size=8)


@pytest.fixture
def engine(repository, sessions, menus):
    return DecisionTreeEngine(
        repository=repository,
        sessions=sessions,
        menus=menus,
        images=ImageResolver(None),
    )


@pytest.fixture
def reports(repository, sessions):
    return ReportService(store=InMemoryKeyValueStore(), repository=repository, sessions=sessions)


@pytest.fixture
def chat(engine, menus, reports):
    return ChatService(engine=engine, menus=menus, reports=reports)
