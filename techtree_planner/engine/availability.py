"""Research frontier of a plan."""

import logging
from collections.abc import Iterable

from techtree_planner.engine.index import GraphIndex
from techtree_planner.engine.resolver import ancestors_of_many, tier_name_key
from techtree_planner.models import (
    Category,
    PlanningView,
    PrerequisiteAnnotation,
    Technology,
)

logger = logging.getLogger(__name__)

CATEGORY_ORDER = [category.value for category in Category]


def _ids(items: Iterable[Technology | str]) -> set[str]:
    return {item if isinstance(item, str) else item.id for item in items}


def available_frontier(
    planned: Iterable[Technology],
    prerequisite_closure: Iterable[Technology],
    researched: Iterable[Technology | str],
) -> list[Technology]:
    """
    Technologies of a plan that can be researched next.

    Rules, first match wins:
    1. candidates are planned + prerequisite_closure, minus researched
    2. tier 0 technologies without prerequisites are available
    3. technologies whose prerequisites are all researched are available
    4. if nothing qualified, every candidate at the lowest remaining tier
    """
    researched_ids = _ids(researched)

    candidates: dict[str, Technology] = {}
    for tech in [*planned, *prerequisite_closure]:
        if tech.id not in researched_ids and tech.id not in candidates:
            candidates[tech.id] = tech

    available = [tech for tech in candidates.values() if tech.is_root]
    available_ids = {tech.id for tech in available}
    for tech in candidates.values():
        if tech.id in available_ids:
            continue
        if all(prereq_id in researched_ids for prereq_id in tech.prerequisites):
            available.append(tech)
            available_ids.add(tech.id)

    if not available and candidates:
        lowest_tier = min(tech.tier for tech in candidates.values())
        available = [tech for tech in candidates.values() if tech.tier == lowest_tier]
        logger.info(
            "No researchable technology in plan, falling back to tier %d (%d techs)",
            lowest_tier,
            len(available),
        )

    return available


def remaining_prerequisites(
    annotations: Iterable[PrerequisiteAnnotation],
    researched: Iterable[Technology | str],
) -> dict[str, list[Technology]]:
    """Unresearched prerequisites grouped by the planned technology they gate."""
    researched_ids = _ids(researched)

    grouped: dict[str, list[Technology]] = {}
    for annotation in annotations:
        tech = annotation.technology
        if tech.id in researched_ids:
            continue
        for planned in annotation.gates_planned_techs:
            group = grouped.setdefault(planned.id, [])
            if all(existing.id != tech.id for existing in group):
                group.append(tech)

    for group in grouped.values():
        group.sort(key=tier_name_key)
    return grouped


def plan(
    index: GraphIndex,
    planned_ids: Iterable[str],
    researched_ids: Iterable[str],
) -> PlanningView:
    """Resolve a plan into its frontier and outstanding prerequisites."""
    planned_ids = list(dict.fromkeys(planned_ids))
    researched = set(researched_ids)
    planned = [index.lookup(tech_id) for tech_id in planned_ids]

    resolution = ancestors_of_many(index, planned_ids)
    annotations = list(resolution.annotations.values())
    available = available_frontier(
        planned, [a.technology for a in annotations], researched
    )

    logger.info(
        "Plan of %d techs: %d prerequisites, %d available",
        len(planned),
        len(annotations),
        len(available),
    )
    return PlanningView(
        available=sort_for_display(available),
        remaining_prerequisites=remaining_prerequisites(annotations, researched),
        prerequisites=annotations,
        warnings=resolution.warnings,
    )


def _category_rank(category: str) -> int:
    if category in CATEGORY_ORDER:
        return CATEGORY_ORDER.index(category)
    return len(CATEGORY_ORDER)


def sort_for_display(technologies: Iterable[Technology]) -> list[Technology]:
    """Order by category lane, then tier, then name."""
    return sorted(
        technologies,
        key=lambda tech: (_category_rank(tech.category), tech.category, *tier_name_key(tech)),
    )


def group_by_category(technologies: Iterable[Technology]) -> dict[str, list[Technology]]:
    """Known categories always present (possibly empty), each sorted by tier and name."""
    grouped: dict[str, list[Technology]] = {category: [] for category in CATEGORY_ORDER}
    for tech in sort_for_display(technologies):
        grouped.setdefault(tech.category, []).append(tech)
    return grouped
