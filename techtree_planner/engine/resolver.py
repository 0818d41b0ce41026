"""Transitive prerequisite and unlock resolution."""

import logging
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from techtree_planner.engine.index import GraphIndex
from techtree_planner.engine.layout import edge_id
from techtree_planner.errors import MalformedGraphWarning
from techtree_planner.models import (
    Closure,
    HighlightPath,
    MultiClosure,
    PrerequisiteAnnotation,
    Technology,
)

logger = logging.getLogger(__name__)

_ACTIVE = 1  # on the traversal stack
_DONE = 2


def tier_name_key(tech: Technology) -> tuple:
    """Sort key used by every prerequisite listing: tier, then name."""
    return (tech.tier, tech.label.lower(), tech.id)


def _walk(
    index: GraphIndex,
    seed: Technology,
    neighbours: Callable[[Technology], Iterable[str]],
) -> tuple[frozenset[Technology], tuple[MalformedGraphWarning, ...]]:
    """
    Depth-first walk from seed with an explicit stack.

    A node already finished (diamond) is skipped silently. A node still on
    the stack closes a cycle and is reported; an id missing from the index is
    reported as dangling. The seed itself is never part of the result.
    """
    state: dict[str, int] = {seed.id: _ACTIVE}
    found: dict[str, Technology] = {}
    warnings: list[MalformedGraphWarning] = []
    stack: list[tuple[str, Iterator[str]]] = [(seed.id, iter(neighbours(seed)))]

    while stack:
        node_id, pending = stack[-1]
        next_id = next(pending, None)
        if next_id is None:
            state[node_id] = _DONE
            stack.pop()
            continue

        status = state.get(next_id)
        if status == _DONE:
            continue
        if status == _ACTIVE:
            warnings.append(
                MalformedGraphWarning(MalformedGraphWarning.CYCLE, node_id, next_id)
            )
            continue

        tech = index.get(next_id)
        if tech is None:
            warnings.append(
                MalformedGraphWarning(MalformedGraphWarning.DANGLING, node_id, next_id)
            )
            continue

        found[next_id] = tech
        state[next_id] = _ACTIVE
        stack.append((next_id, iter(neighbours(tech))))

    return frozenset(found.values()), tuple(warnings)


def log_warnings(warnings: Iterable[MalformedGraphWarning], context: str) -> None:
    for warning in warnings:
        logger.warning("%s (while resolving %s)", warning, context)


def ancestors(index: GraphIndex, seed_id: str, *, report: bool = True) -> Closure:
    """
    Everything seed_id depends on, directly or transitively.

    With report=False the warnings are only returned, so callers that
    resolve many seeds can log the merged set once.
    """
    seed = index.lookup(seed_id)
    technologies, warnings = _walk(index, seed, lambda tech: tech.prerequisites)
    if report:
        log_warnings(warnings, seed_id)
    logger.debug("%s has %d prerequisites", seed_id, len(technologies))
    return Closure(seed=seed, technologies=technologies, warnings=warnings)


def descendants(index: GraphIndex, seed_id: str, *, report: bool = True) -> Closure:
    """Everything that requires seed_id, directly or transitively."""
    seed = index.lookup(seed_id)
    technologies, warnings = _walk(
        index, seed, lambda tech: index.dependent_ids(tech.id)
    )
    if report:
        log_warnings(warnings, seed_id)
    logger.debug("%s unlocks %d technologies", seed_id, len(technologies))
    return Closure(seed=seed, technologies=technologies, warnings=warnings)


def _merge_warnings(
    groups: Iterable[Iterable[MalformedGraphWarning]],
) -> tuple[MalformedGraphWarning, ...]:
    merged: dict[MalformedGraphWarning, None] = {}
    for group in groups:
        for warning in group:
            merged.setdefault(warning, None)
    return tuple(merged)


def ancestors_of_many(index: GraphIndex, seed_ids: Iterable[str]) -> MultiClosure:
    """
    Resolve the prerequisite closure of several planned technologies.

    Every prerequisite gets one annotation listing, in seed order, the
    planned technologies it gates. A prerequisite shared by two seeds
    appears once in the union with both seeds in gates_planned_techs.
    """
    per_seed: dict[str, Closure] = {}
    for seed_id in seed_ids:
        if seed_id not in per_seed:
            per_seed[seed_id] = ancestors(index, seed_id, report=False)

    annotations: dict[str, PrerequisiteAnnotation] = {}
    for closure in per_seed.values():
        for prereq in sorted(closure.technologies, key=tier_name_key):
            annotation = annotations.get(prereq.id)
            if annotation is None:
                annotation = PrerequisiteAnnotation(technology=prereq)
                annotations[prereq.id] = annotation
            annotation.gates_planned_techs.append(closure.seed)

    warnings = _merge_warnings(c.warnings for c in per_seed.values())
    log_warnings(warnings, ", ".join(per_seed))
    return MultiClosure(per_seed=per_seed, annotations=annotations, warnings=warnings)


def highlight_path(index: GraphIndex, seed_id: str) -> HighlightPath:
    """Node and edge ids of the prerequisite chain behind a selection."""
    closure = ancestors(index, seed_id)
    chain = [closure.seed, *closure.technologies]
    node_ids = frozenset(tech.id for tech in chain)
    edge_ids = frozenset(
        edge_id(prereq_id, tech.id)
        for tech in chain
        for prereq_id in tech.prerequisites
        if prereq_id in node_ids
    )
    return HighlightPath(selected_id=seed_id, node_ids=node_ids, edge_ids=edge_ids)


@dataclass(frozen=True)
class PrerequisiteSummary:
    """Direct and transitive prerequisites of one technology."""

    technology: Technology
    direct: list[Technology]
    all: list[Technology]
    warnings: tuple[MalformedGraphWarning, ...] = ()

    def to_dict(self) -> dict:
        return {
            "technology": self.technology.to_dict(),
            "directPrerequisites": [tech.to_dict() for tech in self.direct],
            "allPrerequisites": [tech.to_dict() for tech in self.all],
        }


def prerequisite_summary(index: GraphIndex, tech_id: str) -> PrerequisiteSummary:
    """Direct prerequisites plus the full closure, sorted by tier then name."""
    closure = ancestors(index, tech_id)
    return PrerequisiteSummary(
        technology=closure.seed,
        direct=index.prerequisites_of(tech_id),
        all=sorted(closure.technologies, key=tier_name_key),
        warnings=closure.warnings,
    )


def depths(index: GraphIndex) -> dict[str, int]:
    """
    Longest-path depth of every technology (roots are 0).

    Only prerequisites that resolve count. Technologies caught in a cycle
    never become ready; they get one more than their deepest placed parent.
    """
    pending = {
        tech.id: sum(1 for p in set(tech.prerequisites) if p in index) for tech in index
    }
    depth = {tech_id: 0 for tech_id, count in pending.items() if count == 0}
    queue = deque(depth)

    while queue:
        tech_id = queue.popleft()
        for dependent_id in index.dependent_ids(tech_id):
            depth[dependent_id] = max(depth.get(dependent_id, 0), depth[tech_id] + 1)
            pending[dependent_id] -= 1
            if pending[dependent_id] == 0:
                queue.append(dependent_id)

    stuck = [tech for tech in index if pending[tech.id] > 0]
    if stuck:
        logger.warning(
            "%d technologies are part of a prerequisite cycle: %s",
            len(stuck),
            ", ".join(tech.id for tech in stuck),
        )
    for tech in stuck:
        placed = [depth[p] for p in tech.prerequisites if p in depth and p in index]
        depth[tech.id] = max(placed) + 1 if placed else 0

    return depth


def path_to_root(
    index: GraphIndex, tech_id: str, depth_map: dict[str, int] | None = None
) -> list[str]:
    """Ids from a root down to tech_id, following the deepest shallower parent."""
    index.lookup(tech_id)
    if depth_map is None:
        depth_map = depths(index)

    path = []
    seen = set()
    current: str | None = tech_id
    while current is not None and current not in seen:
        path.append(current)
        seen.add(current)

        node_depth = depth_map.get(current, 0)
        best: str | None = None
        best_depth = -1
        for parent in index.prerequisites_of(current):
            parent_depth = depth_map.get(parent.id, 0)
            if best_depth < parent_depth < node_depth:
                best = parent.id
                best_depth = parent_depth
        current = best

    path.reverse()
    return path


@dataclass
class DepthProfile:
    """Technologies grouped by longest-path depth."""

    levels: dict[int, list[Technology]]

    def nodes_at(self, depth: int) -> list[Technology]:
        return list(self.levels.get(depth, []))

    @property
    def max_depth(self) -> int:
        return max(self.levels, default=0)

    @property
    def max_width(self) -> int:
        """Size of the most crowded level."""
        return max((len(techs) for techs in self.levels.values()), default=0)


def depth_profile(index: GraphIndex, depth_map: dict[str, int] | None = None) -> DepthProfile:
    if depth_map is None:
        depth_map = depths(index)

    levels: dict[int, list[Technology]] = {}
    for tech in sorted(index, key=tier_name_key):
        levels.setdefault(depth_map[tech.id], []).append(tech)
    return DepthProfile(levels=dict(sorted(levels.items())))
