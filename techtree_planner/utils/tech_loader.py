"""Technology catalog, plan and layout loaders."""

import json
import logging
from collections.abc import Mapping
from pathlib import Path

from techtree_planner.engine.layout import LayoutConfig
from techtree_planner.errors import MalformedRecordError
from techtree_planner.models import Category, Technology

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent.parent.parent / "data"

KNOWN_CATEGORIES = {category.value for category in Category}


def _pick(record: dict, *keys: str, default=None):
    """First present key among camelCase / snake_case spellings."""
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return default


_TRUE_STRINGS = {"true", "yes", "1"}
_FALSE_STRINGS = {"false", "no", "0", ""}


def _flag(tech_id: str, record: dict, *keys: str) -> bool:
    """Boolean field; accepts JSON booleans, 0/1 and "true"/"false" strings."""
    value = _pick(record, *keys, default=False)
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise MalformedRecordError(f"{tech_id}: {keys[0]} must be a boolean, got {value!r}")


def _tier(tech_id: str, value) -> int:
    if isinstance(value, bool):
        raise MalformedRecordError(f"{tech_id}: invalid tier {value!r}")
    try:
        tier = float(value)
    except (TypeError, ValueError) as e:
        raise MalformedRecordError(f"{tech_id}: invalid tier ({e})") from e
    if not tier.is_integer():
        raise MalformedRecordError(f"{tech_id}: tier must be a whole number, got {value!r}")
    return int(tier)


def _id_list(data: dict, key: str, json_path: Path) -> list[str]:
    ids = data.get(key, [])
    if not isinstance(ids, list):
        raise MalformedRecordError(f"{json_path}: {key!r} must be a list of ids")
    return [str(tech_id) for tech_id in ids]


def parse_technology(record: dict) -> Technology:
    """
    Build a Technology from one catalog record.

    Expected shape (camelCase or snake_case keys):
        {"id", "name", "tier", "category", "area", "cost",
         "description", "prerequisites": [...]}
    """
    if not isinstance(record, dict):
        raise MalformedRecordError(f"Technology record must be an object: {record!r}")

    tech_id = str(_pick(record, "id", default="")).strip()
    if not tech_id:
        raise MalformedRecordError(f"Technology record without id: {record!r}")

    prerequisites = _pick(record, "prerequisites", default=[])
    if isinstance(prerequisites, str):
        prerequisites = [prerequisites]
    if not isinstance(prerequisites, list):
        raise MalformedRecordError(f"{tech_id}: prerequisites must be a list")

    tier = _tier(tech_id, _pick(record, "tier", default=0))
    try:
        cost = float(_pick(record, "cost", default=0))
    except (TypeError, ValueError) as e:
        raise MalformedRecordError(f"{tech_id}: invalid cost ({e})") from e
    if tier < 0 or cost < 0:
        raise MalformedRecordError(f"{tech_id}: tier and cost must be non-negative")
    if cost.is_integer():
        cost = int(cost)

    category = str(_pick(record, "category", "categoryId", "category_id", "areaId", default=""))
    category = category.strip().lower()
    if category not in KNOWN_CATEGORIES:
        logger.warning("%s: unknown category %r", tech_id, category)

    name = str(_pick(record, "name", default=tech_id))
    return Technology(
        id=tech_id,
        name=name,
        tier=tier,
        category=category,
        area=str(_pick(record, "area", "areaName", "area_name", default="")).strip().lower(),
        cost=cost,
        description=str(_pick(record, "description", default="")),
        prerequisites=tuple(str(p).strip() for p in prerequisites if str(p).strip()),
        display_name=str(_pick(record, "displayName", "display_name", default=name)),
        is_starting_tech=_flag(tech_id, record, "isStartingTech", "is_starting_tech"),
        is_rare=_flag(tech_id, record, "isRare", "is_rare"),
        is_dangerous=_flag(tech_id, record, "isDangerous", "is_dangerous"),
        source_mod=_pick(record, "sourceMod", "source_mod", "modId", "mod_id") or None,
    )


def load_technologies(json_path: Path | None = None) -> list[Technology]:
    """Load technologies from a JSON array (or {"technologies": [...]})."""
    if json_path is None:
        json_path = DATA_DIR / "technologies.json"

    with open(json_path, encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("technologies")
    if not isinstance(data, list):
        raise MalformedRecordError(f"{json_path}: expected a list of technologies")

    technologies = [parse_technology(record) for record in data]
    logger.info("Loaded %d technologies from %s", len(technologies), json_path)
    return technologies


def load_plan(json_path: Path | None = None) -> tuple[list[str], list[str]]:
    """
    Load planned and researched technology ids.

    Expected format:
        {"planned": ["tech_a", ...], "researched": ["tech_b", ...]}
    """
    if json_path is None:
        json_path = DATA_DIR / "plan.json"

    if not json_path.exists():
        # No saved plan yet
        return [], []

    with open(json_path, encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise MalformedRecordError(f"{json_path}: expected a plan object")

    planned = _id_list(data, "planned", json_path)
    researched = _id_list(data, "researched", json_path)
    return planned, researched


def save_plan(json_path: Path, planned: list[str], researched: list[str]) -> None:
    json_path.write_text(
        json.dumps({"planned": planned, "researched": researched}, indent=2),
        encoding="utf-8",
    )


def load_layout_config(json_path: Path | None = None) -> LayoutConfig:
    """Layout constants, falling back to the built-in grid."""
    if json_path is None:
        json_path = DATA_DIR / "layout.json"

    if not json_path.exists():
        return LayoutConfig()

    with open(json_path, encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise MalformedRecordError(f"{json_path}: expected a layout object")

    defaults = LayoutConfig()
    lanes = data.get("category_lanes", defaults.category_lanes)
    slots_by_category = data.get("area_slots", defaults.area_slots)
    if not isinstance(lanes, Mapping) or not isinstance(slots_by_category, Mapping):
        raise MalformedRecordError(f"{json_path}: lanes and area slots must be objects")
    if not all(isinstance(slots, Mapping) for slots in slots_by_category.values()):
        raise MalformedRecordError(f"{json_path}: area slots must map area to slot")

    try:
        return LayoutConfig(
            category_lanes={k: int(v) for k, v in lanes.items()},
            area_slots={
                category: {area: int(slot) for area, slot in slots.items()}
                for category, slots in slots_by_category.items()
            },
            node_width=int(data.get("node_width", defaults.node_width)),
            node_height=int(data.get("node_height", defaults.node_height)),
            area_gap=int(data.get("area_gap", defaults.area_gap)),
            category_spacing=int(data.get("category_spacing", defaults.category_spacing)),
            tier_spacing=int(data.get("tier_spacing", defaults.tier_spacing)),
            other_slot=int(data.get("other_slot", defaults.other_slot)),
        )
    except (TypeError, ValueError) as e:
        raise MalformedRecordError(f"{json_path}: invalid layout value ({e})") from e
