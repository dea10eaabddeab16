import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..domain.models import (
    DecisionNode,
    DecisionTree,
    Fault,
    FaultPack,
    JumpToMenu,
    Manufacturer,
    NodeRef,
    NodeTarget,
    Option,
    RouteTo,
)
from ..services.exceptions import UnknownManufacturerError

logger = logging.getLogger(__name__)

ROUTE_PREFIX = "route:"
MENU_PREFIX = "menu:"
TRUTHY = {"true", "yes", "on", "1"}


# The Interface
class FaultPackRepository(ABC):
    """
    Defines how the application accesses fault packs.
    The engine never caches packs, so implementations decide freshness.
    """

    @abstractmethod
    def get_pack(self, manufacturer: Manufacturer) -> FaultPack:
        """
        Retrieves a pack. A pack that cannot be loaded is returned empty.
        """
        pass

    def get_fault(self, manufacturer: Manufacturer, fault_id: str) -> Optional[Fault]:
        return self.get_pack(manufacturer).get_fault(fault_id)


class StaticFaultPackRepository(FaultPackRepository):
    """
    Serves packs from memory. Used by tests and tooling.
    """

    def __init__(self, packs: Optional[Dict[Manufacturer, FaultPack]] = None):
        self._index: Dict[Manufacturer, FaultPack] = dict(packs or {})

    def get_pack(self, manufacturer: Manufacturer) -> FaultPack:
        return self._index.get(manufacturer) or FaultPack(manufacturer=manufacturer)


class YamlFaultPackRepository(FaultPackRepository):
    """
    Reads `<faults_dir>/<pack>.yml` on every access so edits to the fault
    library show up without a restart.
    """

    def __init__(self, faults_dir: Path):
        self.faults_dir = Path(faults_dir)

    def source_path(self, manufacturer: Manufacturer) -> Path:
        yml = self.faults_dir / f"{manufacturer.value}.yml"
        if yml.exists():
            return yml
        yaml_path = self.faults_dir / f"{manufacturer.value}.yaml"
        return yaml_path if yaml_path.exists() else yml

    def get_pack(self, manufacturer: Manufacturer) -> FaultPack:
        path = self.source_path(manufacturer)
        if not path.exists():
            logger.error(f"Missing fault pack for {manufacturer.value} at: {path}")
            return FaultPack(manufacturer=manufacturer)

        try:
            # Binary mode lets PyYAML report undecodable bytes as a YAMLError
            with open(path, "rb") as f:
                raw = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"YAML load failed: {path}: {e}")
            return FaultPack(manufacturer=manufacturer)

        return parse_fault_pack(manufacturer, raw)


# ==============================================================================
# Normalization
#
# Fault packs are hand-authored. Everything is coerced into typed records here,
# once, so the engine can assume well-formed structure.
# ==============================================================================


def parse_fault_pack(manufacturer: Manufacturer, raw: Any) -> FaultPack:
    """Accepts either `{faults: [...]}` or a bare list of faults."""
    if isinstance(raw, list):
        items = raw
    elif isinstance(raw, dict) and isinstance(raw.get("faults"), list):
        items = raw["faults"]
    else:
        if raw:
            logger.warning(f"{manufacturer.value}: no fault list found, pack is empty")
        items = []

    faults = []
    for position, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            logger.warning(f"{manufacturer.value}: skipping fault #{position} (not a mapping)")
            continue
        faults.append(_parse_fault(manufacturer, item, position))

    return FaultPack(manufacturer=manufacturer, faults=faults)


def _parse_fault(manufacturer: Manufacturer, raw: Dict[str, Any], position: int) -> Fault:
    fault_id = _first(raw, "id", "code", "fault_id", "faultId")
    fault_id = str(position if fault_id is None else fault_id)
    title = str(_first(raw, "title", "name", "fault") or f"Fault {position}")

    response = raw.get("response")
    markdown = None
    if isinstance(response, dict) and response.get("telegram_markdown"):
        markdown = str(response["telegram_markdown"])

    tree = None
    if raw.get("decision_tree") is not None:
        tree = _parse_tree(f"{manufacturer.value}/{fault_id}", raw["decision_tree"])

    return Fault(
        id=fault_id,
        title=title,
        response_markdown=markdown,
        symptoms=_string_list(raw.get("symptoms")),
        safety=_string_list(raw.get("safety")),
        checks=_string_list(raw.get("checks")),
        actions=_string_list(raw.get("actions")),
        escalation=_string_list(raw.get("escalation")),
        common=_flag(raw.get("common")),
        decision_tree=tree,
    )


def _parse_tree(where: str, raw: Any) -> Optional[DecisionTree]:
    if not isinstance(raw, dict):
        logger.warning(f"{where}: decision_tree is not a mapping, ignored")
        return None

    start = _first(raw, "start_node", "start")
    raw_nodes = raw.get("nodes")
    if not start or not isinstance(raw_nodes, dict) or not raw_nodes:
        logger.warning(f"{where}: decision_tree needs start_node and nodes, ignored")
        return None

    nodes: Dict[str, DecisionNode] = {}
    for node_id, node_raw in raw_nodes.items():
        if not isinstance(node_raw, dict):
            logger.warning(f"{where}: node '{node_id}' is not a mapping, dropped")
            continue
        nodes[str(node_id)] = _parse_node(where, str(node_id), node_raw)

    if str(start) not in nodes:
        # Kept: the engine reports the missing node in chat.
        logger.warning(f"{where}: start node '{start}' is not defined")

    return DecisionTree(start_node=str(start), nodes=nodes)


def _parse_node(where: str, node_id: str, raw: Dict[str, Any]) -> DecisionNode:
    prompt = _first(raw, "prompt", "text")
    image = raw.get("image")

    options: List[Option] = []
    raw_options = raw.get("options") or []
    if not isinstance(raw_options, list):
        logger.warning(f"{where}: node '{node_id}' options is not a list, ignored")
        raw_options = []

    for position, opt in enumerate(raw_options, start=1):
        if not isinstance(opt, dict):
            logger.warning(f"{where}: node '{node_id}' option #{position} is not a mapping")
            continue
        label = str(opt.get("label") or f"Option {position}")
        options.append(Option(label=label, next=parse_node_ref(where, opt.get("next"))))

    return DecisionNode(
        id=node_id,
        prompt=str(prompt) if prompt is not None else "",
        image=str(image) if image else None,
        options=options,
    )


def parse_node_ref(where: str, raw: Any) -> Optional[NodeRef]:
    """
    Parses an option target.

        route:<pack>:<fault_id>   enter another fault's tree
        menu:<pack>               jump to a pack menu
        anything else             node in the same tree
    """
    if raw is None or str(raw).strip() == "":
        return None

    value = str(raw).strip()

    if value.startswith(ROUTE_PREFIX):
        pack_raw, _, fault_id = value[len(ROUTE_PREFIX):].partition(":")
        pack = _manufacturer_or_none(where, pack_raw)
        if pack and fault_id:
            return RouteTo(pack=pack, fault_id=fault_id)
        logger.warning(f"{where}: malformed route token '{value}'")
        return NodeTarget(value)

    if value.startswith(MENU_PREFIX):
        pack = _manufacturer_or_none(where, value[len(MENU_PREFIX):])
        if pack:
            return JumpToMenu(pack=pack)
        logger.warning(f"{where}: malformed menu token '{value}'")
        return NodeTarget(value)

    return NodeTarget(value)


def _manufacturer_or_none(where: str, raw: str) -> Optional[Manufacturer]:
    try:
        return Manufacturer.parse(raw)
    except UnknownManufacturerError as e:
        logger.warning(f"{where}: {e}")
        return None


def _first(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v) for v in value if v is not None]
    return [str(value)]


def _flag(value: Any) -> bool:
    """YAML booleans, plus the quoted spellings authors tend to use."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY
    return False
