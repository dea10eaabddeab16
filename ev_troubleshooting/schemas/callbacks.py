"""
Schemas - Callback Data Protocol

Buttons carry short, content-free tokens instead of embedding pack/fault/node
identifiers: Telegram limits callback_data to 64 bytes, and positional tokens
stay valid (or fail safely) on stale messages.

    <pack>:menu            pack fault menu
    <pack>:all             full fault list for a pack
    <pack>:fault:<id>      fault card
    dt:start               enter the active fault's tree
    dt:o:<index>           choose option <index> on the current node
    dt:bk                  back one node (fault card from the first node)
    dt:mn                  leave the tree for the active pack's menu
    RF|<pack>|<faultId>    report wizard prefilled from a fault
    <PACK_UPPER>:<id>      legacy form of <pack>:fault:<id>
    r:...                  report wizard steps
"""
from dataclasses import dataclass
from typing import Optional, Union

from ..domain.models import Manufacturer
from ..services.exceptions import CallbackDataTooLongError, UnknownManufacturerError

MAX_CALLBACK_BYTES = 64

NOOP = "noop"
RESET = "reset"
MANUFACTURER_MENU = "menu:mfr"
TREE_START = "dt:start"
TREE_BACK = "dt:bk"
TREE_MENU = "dt:mn"
REPORT_NEW = "r:new"
REPORT_CANCEL = "r:cancel"
REPORT_ACTIONS_DONE = "r:act:done"
REPORT_SKIP_NOTES = "r:notes:skip"


# ==============================================================================
# Commands
# ==============================================================================


@dataclass(frozen=True)
class Noop:
    pass


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class ShowManufacturers:
    pass


@dataclass(frozen=True)
class ShowPackMenu:
    pack: Manufacturer
    full: bool = False


@dataclass(frozen=True)
class OpenFault:
    pack: Manufacturer
    fault_id: str


@dataclass(frozen=True)
class TreeStart:
    pass


@dataclass(frozen=True)
class TreeOption:
    index: int


@dataclass(frozen=True)
class TreeBack:
    pass


@dataclass(frozen=True)
class TreeMenu:
    pass


@dataclass(frozen=True)
class ReportFromFault:
    pack: Manufacturer
    fault_id: str


@dataclass(frozen=True)
class ReportNew:
    pass


@dataclass(frozen=True)
class ReportCancel:
    pass


@dataclass(frozen=True)
class ReportFault:
    pack: Manufacturer
    fault_id: str


@dataclass(frozen=True)
class ReportActionToggle:
    index: int


@dataclass(frozen=True)
class ReportActionsDone:
    pass


@dataclass(frozen=True)
class ReportResolution:
    index: int


@dataclass(frozen=True)
class ReportSkipNotes:
    pass


Command = Union[
    Noop,
    Reset,
    ShowManufacturers,
    ShowPackMenu,
    OpenFault,
    TreeStart,
    TreeOption,
    TreeBack,
    TreeMenu,
    ReportFromFault,
    ReportNew,
    ReportCancel,
    ReportFault,
    ReportActionToggle,
    ReportActionsDone,
    ReportResolution,
    ReportSkipNotes,
]

_FIXED = {
    NOOP: Noop(),
    RESET: Reset(),
    MANUFACTURER_MENU: ShowManufacturers(),
    TREE_START: TreeStart(),
    TREE_BACK: TreeBack(),
    TREE_MENU: TreeMenu(),
    REPORT_NEW: ReportNew(),
    REPORT_CANCEL: ReportCancel(),
    REPORT_ACTIONS_DONE: ReportActionsDone(),
    REPORT_SKIP_NOTES: ReportSkipNotes(),
}

_LEGACY_PREFIXES = {m.legacy_prefix: m for m in Manufacturer}


# ==============================================================================
# Parsing
# ==============================================================================


def parse_callback(data: str) -> Optional[Command]:
    """
    Classify raw callback data. Returns None for anything unrecognised
    (including malformed indices and unknown packs) so stale or corrupted
    buttons are ignored rather than misrouted.
    """
    data = (data or "").strip()
    if not data:
        return None

    if data in _FIXED:
        return _FIXED[data]

    if data.startswith("dt:o:"):
        index = _parse_index(data[len("dt:o:"):])
        return TreeOption(index) if index is not None else None

    if data.startswith("RF|"):
        parts = data.split("|", 2)
        if len(parts) != 3 or not parts[2]:
            return None
        pack = _parse_pack(parts[1])
        return ReportFromFault(pack, parts[2]) if pack else None

    if data.startswith("r:"):
        return _parse_report(data)

    if data.startswith("mfr:"):
        pack = _parse_pack(data[len("mfr:"):])
        return ShowPackMenu(pack) if pack else None

    return _parse_pack_command(data)


def _parse_report(data: str) -> Optional[Command]:
    if data.startswith("r:act:"):
        index = _parse_index(data[len("r:act:"):])
        return ReportActionToggle(index) if index is not None else None

    if data.startswith("r:res:"):
        index = _parse_index(data[len("r:res:"):])
        return ReportResolution(index) if index is not None else None

    if data.startswith("r:fault:"):
        parts = data[len("r:fault:"):].split(":", 1)
        if len(parts) != 2 or not parts[1]:
            return None
        pack = _parse_pack(parts[0])
        return ReportFault(pack, parts[1]) if pack else None

    return None


def _parse_pack_command(data: str) -> Optional[Command]:
    head, sep, rest = data.partition(":")
    if not sep or not rest:
        return None

    # Legacy `<PACK_UPPER>:<id>` buttons from earlier releases
    if head in _LEGACY_PREFIXES:
        return OpenFault(_LEGACY_PREFIXES[head], rest)

    pack = _parse_pack(head) if head == head.lower() else None
    if pack is None:
        return None

    if rest == "menu":
        return ShowPackMenu(pack)
    if rest == "all":
        return ShowPackMenu(pack, full=True)
    if rest.startswith("fault:") and len(rest) > len("fault:"):
        return OpenFault(pack, rest[len("fault:"):])
    return None


def _parse_pack(raw: str) -> Optional[Manufacturer]:
    try:
        return Manufacturer.parse(raw)
    except UnknownManufacturerError:
        return None


def _parse_index(raw: str) -> Optional[int]:
    if not raw.isdigit():
        return None
    return int(raw)


# ==============================================================================
# Building
# ==============================================================================


def _checked(token: str) -> str:
    if len(token.encode("utf-8")) > MAX_CALLBACK_BYTES:
        raise CallbackDataTooLongError(
            f"callback_data exceeds {MAX_CALLBACK_BYTES} bytes: {token!r}"
        )
    return token


def pack_menu(pack: Manufacturer) -> str:
    return f"{pack.value}:menu"


def pack_all(pack: Manufacturer) -> str:
    return f"{pack.value}:all"


def open_fault(pack: Manufacturer, fault_id: str) -> str:
    return _checked(f"{pack.value}:fault:{fault_id}")


def tree_option(index: int) -> str:
    return f"dt:o:{index}"


def report_from_fault(pack: Manufacturer, fault_id: str) -> str:
    return _checked(f"RF|{pack.value}|{fault_id}")


def report_fault(pack: Manufacturer, fault_id: str) -> str:
    return _checked(f"r:fault:{pack.value}:{fault_id}")


def report_action(index: int) -> str:
    return f"r:act:{index}"


def report_resolution(index: int) -> str:
    return f"r:res:{index}"
