"""Data models for the technology graph and research plans."""

from dataclasses import dataclass, field

from techtree_planner.errors import MalformedGraphWarning
from techtree_planner.models.technology import Category, Technology

__all__ = [
    "Category",
    "Closure",
    "Coordinate",
    "FilterResult",
    "FilterSettings",
    "GraphEdge",
    "GraphNode",
    "GraphView",
    "HighlightPath",
    "MultiClosure",
    "PlanningView",
    "PrerequisiteAnnotation",
    "ResearchAction",
    "ResearchSchedule",
    "Technology",
]


@dataclass(frozen=True)
class Coordinate:
    """Position of a node on the canvas."""

    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Closure:
    """Transitive prerequisites (or unlocks) of a single technology."""

    seed: Technology
    technologies: frozenset[Technology]
    warnings: tuple[MalformedGraphWarning, ...] = ()

    def __contains__(self, item: object) -> bool:
        if isinstance(item, str):
            return item in self.ids
        return item in self.technologies

    def __iter__(self):
        return iter(self.technologies)

    def __len__(self) -> int:
        return len(self.technologies)

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(tech.id for tech in self.technologies)


@dataclass
class PrerequisiteAnnotation:
    """A prerequisite together with the planned technologies it gates."""

    technology: Technology
    gates_planned_techs: list[Technology] = field(default_factory=list)
    is_prerequisite: bool = True


@dataclass(frozen=True)
class MultiClosure:
    """Prerequisite closures of several seeds and their shared fan-out."""

    per_seed: dict[str, Closure]
    annotations: dict[str, PrerequisiteAnnotation]  # prerequisite id -> annotation
    warnings: tuple[MalformedGraphWarning, ...] = ()

    @property
    def union(self) -> frozenset[Technology]:
        return frozenset(a.technology for a in self.annotations.values())

    def gates(self, prerequisite_id: str) -> list[Technology]:
        """Planned technologies that require the given prerequisite."""
        annotation = self.annotations.get(prerequisite_id)
        return list(annotation.gates_planned_techs) if annotation else []


@dataclass(frozen=True)
class HighlightPath:
    """Nodes and edges to highlight when a technology is selected."""

    selected_id: str
    node_ids: frozenset[str]
    edge_ids: frozenset[str]


@dataclass(frozen=True)
class FilterSettings:
    """Allowed values for each filter axis."""

    categories: frozenset[str]
    areas: frozenset[str]
    tiers: frozenset[int]
    include_prerequisites: bool = True


@dataclass(frozen=True)
class FilterResult:
    """Technologies left visible after filtering."""

    visible: list[Technology]
    warnings: tuple[MalformedGraphWarning, ...] = ()

    @property
    def ids(self) -> list[str]:
        return [tech.id for tech in self.visible]


@dataclass
class PlanningView:
    """What the planning panel shows for a plan."""

    available: list[Technology]
    remaining_prerequisites: dict[str, list[Technology]]
    prerequisites: list[PrerequisiteAnnotation]
    warnings: tuple[MalformedGraphWarning, ...] = ()

    def to_dict(self) -> dict:
        return {
            "available": [tech.to_dict() for tech in self.available],
            "remainingPrerequisites": {
                planned_id: [tech.to_dict() for tech in techs]
                for planned_id, techs in self.remaining_prerequisites.items()
            },
        }


@dataclass(frozen=True)
class GraphNode:
    """Node handed to the rendering layer."""

    id: str
    position: Coordinate
    data: Technology

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "position": self.position.to_dict(),
            "data": self.data.to_dict(),
        }


@dataclass(frozen=True)
class GraphEdge:
    """Prerequisite edge handed to the rendering layer."""

    id: str  # "<prerequisiteId>-<dependentId>"
    source: str
    target: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "source": self.source, "target": self.target}


@dataclass(frozen=True)
class GraphView:
    """Complete rendering payload."""

    nodes: list[GraphNode]
    edges: list[GraphEdge]

    def to_dict(self) -> dict:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }


@dataclass
class ResearchAction:
    """Represents a scheduled research task on one lane."""

    technology: Technology
    lane: str  # category the task is researched in
    start_day: int
    end_day: int

    def __str__(self) -> str:
        """Human-readable representation."""
        return f"{self.technology.label} [{self.lane}] day {self.start_day}→{self.end_day}"


@dataclass
class ResearchSchedule:
    """Ordered research plan with its total duration."""

    actions: list[ResearchAction]
    total_days: int
    optimal: bool = False

    def by_lane(self) -> dict[str, list[ResearchAction]]:
        """Group actions per research lane, each sorted by start day."""
        lanes: dict[str, list[ResearchAction]] = {}
        for action in sorted(self.actions, key=lambda a: (a.start_day, a.technology.id)):
            lanes.setdefault(action.lane, []).append(action)
        return lanes

    def to_dict(self) -> dict:
        return {
            "total_days": self.total_days,
            "optimal": self.optimal,
            "actions": [
                {
                    "id": action.technology.id,
                    "lane": action.lane,
                    "start_day": action.start_day,
                    "end_day": action.end_day,
                }
                for action in self.actions
            ],
        }
