"""Category, area and tier filtering of the visible graph."""

import logging
from collections.abc import Iterable

from techtree_planner.engine.index import GraphIndex
from techtree_planner.engine.resolver import ancestors, log_warnings, tier_name_key
from techtree_planner.errors import MalformedGraphWarning
from techtree_planner.models import FilterResult, FilterSettings, Technology

logger = logging.getLogger(__name__)


def default_filters(technologies: Iterable[Technology]) -> FilterSettings:
    """Every category, area and tier enabled; prerequisites included."""
    technologies = list(technologies)
    return FilterSettings(
        categories=frozenset(tech.category for tech in technologies),
        areas=frozenset(tech.area for tech in technologies),
        tiers=frozenset(tech.tier for tech in technologies),
        include_prerequisites=True,
    )


def matches(tech: Technology, filters: FilterSettings) -> bool:
    return (
        tech.category in filters.categories
        and tech.area in filters.areas
        and tech.tier in filters.tiers
    )


def apply_filters(index: GraphIndex, filters: FilterSettings) -> FilterResult:
    """
    Visible technologies for a filter selection.

    With include_prerequisites, the whole prerequisite closure of every
    matching technology is added back even when it fails the filters.
    """
    visible: dict[str, Technology] = {}
    for tech in index:
        if matches(tech, filters):
            visible[tech.id] = tech

    warnings: dict[MalformedGraphWarning, None] = {}
    if filters.include_prerequisites:
        added = 0
        for tech in list(visible.values()):
            closure = ancestors(index, tech.id, report=False)
            for warning in closure.warnings:
                warnings.setdefault(warning, None)
            for prereq in sorted(closure.technologies, key=tier_name_key):
                if prereq.id not in visible:
                    visible[prereq.id] = prereq
                    added += 1
        logger.debug("Added %d prerequisites outside the filters", added)
        log_warnings(warnings, "filtered view")

    logger.info("Showing %d of %d technologies", len(visible), len(index))
    return FilterResult(visible=list(visible.values()), warnings=tuple(warnings))


def active_filter_count(filters: FilterSettings, technologies: Iterable[Technology]) -> int:
    """Number of disabled filter values, plus one if prerequisites are hidden."""
    defaults = default_filters(technologies)
    count = len(defaults.categories - filters.categories)
    count += len(defaults.areas - filters.areas)
    count += len(defaults.tiers - filters.tiers)
    if not filters.include_prerequisites:
        count += 1
    return count


def search(technologies: Iterable[Technology], query: str) -> list[Technology]:
    """Case-insensitive substring match on id, names, description and area."""
    needle = query.strip().lower()
    if not needle:
        return []

    results = []
    for tech in technologies:
        haystack = (tech.id, tech.name, tech.label, tech.description, tech.area)
        if any(needle in field.lower() for field in haystack):
            results.append(tech)
    return results
