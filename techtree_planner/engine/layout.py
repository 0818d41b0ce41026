"""Grid layout of technologies by category, tier and area."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from techtree_planner.models import (
    Coordinate,
    GraphEdge,
    GraphNode,
    GraphView,
    Technology,
)

OTHER_AREA = "other"


def _default_category_lanes() -> dict[str, int]:
    return {"physics": 0, "society": 1, "engineering": 2}


def _default_area_slots() -> dict[str, dict[str, int]]:
    return {
        "physics": {"weapons": 0, "shields": 1, OTHER_AREA: 2},
        "society": {"research": 0, "biology": 1, OTHER_AREA: 2},
        "engineering": {"power": 0, "ships": 1, OTHER_AREA: 2},
    }


@dataclass(frozen=True)
class LayoutConfig:
    """
    Lane and spacing constants of the grid layout.

    The lane and slot maps are stored as read-only views, so a shared
    config (DEFAULT_LAYOUT) cannot be changed in place. They are left out
    of the hash; equal configs still hash equal.
    """

    category_lanes: Mapping[str, int] = field(
        default_factory=_default_category_lanes, hash=False
    )
    area_slots: Mapping[str, Mapping[str, int]] = field(
        default_factory=_default_area_slots, hash=False
    )
    node_width: int = 200
    node_height: int = 100
    area_gap: int = 50
    category_spacing: int = 750  # three area slots per lane
    tier_spacing: int = 200
    other_slot: int = 2

    def __post_init__(self):
        object.__setattr__(self, "category_lanes", MappingProxyType(dict(self.category_lanes)))
        object.__setattr__(
            self,
            "area_slots",
            MappingProxyType(
                {category: MappingProxyType(dict(slots)) for category, slots in self.area_slots.items()}
            ),
        )

    @property
    def slot_width(self) -> int:
        return self.node_width + self.area_gap

    def lane_of(self, category: str) -> int:
        """Lane index; unknown categories share the lane after the known ones."""
        lane = self.category_lanes.get(category)
        if lane is None:
            return max(self.category_lanes.values(), default=-1) + 1
        return lane

    def slot_of(self, category: str, area: str) -> int:
        slots = self.area_slots.get(category, {})
        return slots.get(area, slots.get(OTHER_AREA, self.other_slot))


DEFAULT_LAYOUT = LayoutConfig()


def position(
    category: str, tier: int, area: str, config: LayoutConfig = DEFAULT_LAYOUT
) -> Coordinate:
    """
    Place a node on the grid.

    x = lane * category_spacing + area slot * (node_width + area_gap)
    y = tier * tier_spacing
    """
    x = config.lane_of(category) * config.category_spacing
    x += config.slot_of(category, area) * config.slot_width
    y = tier * config.tier_spacing
    return Coordinate(x=float(x), y=float(y))


def edge_id(prerequisite_id: str, dependent_id: str) -> str:
    """Edge key shared with the rendering layer's highlight lookups."""
    return f"{prerequisite_id}-{dependent_id}"


def build_graph_view(
    technologies: Iterable[Technology], config: LayoutConfig = DEFAULT_LAYOUT
) -> GraphView:
    """Nodes with grid positions plus one edge per prerequisite link.

    Edges whose prerequisite is not among the given technologies are left
    out, so a filtered view never references a hidden node.
    """
    nodes: list[GraphNode] = []
    seen: set[str] = set()
    for tech in technologies:
        if tech.id in seen:
            continue
        seen.add(tech.id)
        nodes.append(
            GraphNode(
                id=tech.id,
                position=position(tech.category, tech.tier, tech.area, config),
                data=tech,
            )
        )

    edges: list[GraphEdge] = []
    for node in nodes:
        for prereq_id in dict.fromkeys(node.data.prerequisites):
            if prereq_id in seen:
                edges.append(
                    GraphEdge(
                        id=edge_id(prereq_id, node.id), source=prereq_id, target=node.id
                    )
                )

    return GraphView(nodes=nodes, edges=edges)
