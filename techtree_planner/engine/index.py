"""Lookup structures over a technology catalog."""

import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator

from techtree_planner.errors import DuplicateIdError, NotFoundError
from techtree_planner.models import Technology

logger = logging.getLogger(__name__)


class GraphIndex:
    """
    Read-only index over one snapshot of the technology list.

    Holds the by-id map and the reverse prerequisite map (prerequisite id ->
    ids of the technologies that require it). A reload builds a new index;
    an existing index is never patched.
    """

    def __init__(
        self,
        by_id: dict[str, Technology],
        dependents: dict[str, tuple[str, ...]],
    ):
        self._by_id = by_id
        self._dependents = dependents

    @classmethod
    def build(cls, technologies: Iterable[Technology]) -> "GraphIndex":
        """Index technologies, rejecting duplicate ids."""
        by_id: dict[str, Technology] = {}
        for tech in technologies:
            existing = by_id.get(tech.id)
            if existing is not None:
                raise DuplicateIdError(tech.id, (existing.source_mod, tech.source_mod))
            by_id[tech.id] = tech

        dependents: dict[str, list[str]] = defaultdict(list)
        for tech in by_id.values():
            for prereq_id in tech.prerequisites:
                # Dangling ids are indexed too so unlocks of a missing tech resolve
                if tech.id not in dependents[prereq_id]:
                    dependents[prereq_id].append(tech.id)

        logger.debug(
            "Indexed %d technologies (%d with dependents)", len(by_id), len(dependents)
        )
        return cls(by_id, {k: tuple(v) for k, v in dependents.items()})

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[Technology]:
        return iter(self._by_id.values())

    def __contains__(self, tech_id: object) -> bool:
        return tech_id in self._by_id

    @property
    def technologies(self) -> list[Technology]:
        return list(self._by_id.values())

    def get(self, tech_id: str) -> Technology | None:
        return self._by_id.get(tech_id)

    def lookup(self, tech_id: str) -> Technology:
        """Get a technology by id or raise NotFoundError."""
        tech = self._by_id.get(tech_id)
        if tech is None:
            raise NotFoundError(tech_id)
        return tech

    def prerequisites_of(self, tech_id: str) -> list[Technology]:
        """Direct prerequisites of a technology that resolve in this index."""
        tech = self.lookup(tech_id)
        return [self._by_id[p] for p in tech.prerequisites if p in self._by_id]

    def dependent_ids(self, tech_id: str) -> tuple[str, ...]:
        return self._dependents.get(tech_id, ())

    def dependents_of(self, tech_id: str) -> list[Technology]:
        """Technologies that list tech_id as a direct prerequisite."""
        if tech_id not in self._by_id:
            raise NotFoundError(tech_id)
        return [self._by_id[d] for d in self.dependent_ids(tech_id)]

    def dangling_references(self) -> list[tuple[str, str]]:
        """(technology id, missing prerequisite id) pairs, in catalog order."""
        return [
            (tech.id, prereq_id)
            for tech in self._by_id.values()
            for prereq_id in tech.prerequisites
            if prereq_id not in self._by_id
        ]

    def roots(self) -> list[Technology]:
        """Technologies without prerequisites."""
        return [tech for tech in self._by_id.values() if not tech.prerequisites]

    def categories(self) -> list[str]:
        return sorted({tech.category for tech in self._by_id.values()})

    def areas(self) -> list[str]:
        return sorted({tech.area for tech in self._by_id.values()})

    def tiers(self) -> list[int]:
        return sorted({tech.tier for tech in self._by_id.values()})

    def by_category(self, category: str) -> list[Technology]:
        return [tech for tech in self._by_id.values() if tech.category == category]

    def by_area(self, area: str) -> list[Technology]:
        return [tech for tech in self._by_id.values() if tech.area == area]

    def by_tier(self, tier: int) -> list[Technology]:
        return [tech for tech in self._by_id.values() if tech.tier == tier]
