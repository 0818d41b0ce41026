"""Greedy simulation of parallel research lanes."""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass

from techtree_planner.engine.index import GraphIndex
from techtree_planner.engine.resolver import ancestors_of_many
from techtree_planner.models import ResearchAction, ResearchSchedule, Technology

logger = logging.getLogger(__name__)

DEFAULT_RESEARCH_OUTPUT = 10.0  # research points per day and lane


@dataclass
class ResearchTask:
    """A technology still to be researched."""

    technology: Technology
    lane: str
    duration_days: int
    prerequisites: tuple[str, ...]  # ids of other tasks that must finish first


def research_duration(
    tech: Technology, research_output: dict[str, float] | None = None
) -> int:
    """Days needed to research a technology on its category lane."""
    output = (research_output or {}).get(tech.category, DEFAULT_RESEARCH_OUTPUT)
    if output <= 0:
        raise ValueError(f"Research output for {tech.category!r} must be positive")
    return max(1, math.ceil(tech.cost / output))


def collect_research_tasks(
    index: GraphIndex,
    planned_ids: Iterable[str],
    researched_ids: Iterable[str],
    research_output: dict[str, float] | None = None,
) -> list[ResearchTask]:
    """Planned technologies plus their prerequisite closure, minus researched."""
    planned_ids = list(dict.fromkeys(planned_ids))
    researched = set(researched_ids)
    resolution = ancestors_of_many(index, planned_ids)

    pool: dict[str, Technology] = {}
    for tech in [index.lookup(t) for t in planned_ids] + list(
        a.technology for a in resolution.annotations.values()
    ):
        if tech.id not in researched:
            pool.setdefault(tech.id, tech)

    return [
        ResearchTask(
            technology=tech,
            lane=tech.category,
            duration_days=research_duration(tech, research_output),
            prerequisites=tuple(p for p in dict.fromkeys(tech.prerequisites) if p in pool),
        )
        for tech in pool.values()
    ]


class GreedyResearchSolver:
    """
    Greedy solver that simulates research lanes day by day.

    Approach:
    1. Every category is one lane researching one technology at a time
    2. Whenever a lane is idle, start its ready task with the lowest tier
       (ties: cheapest, then id)
    3. Jump to the next completion and repeat
    """

    def __init__(
        self,
        index: GraphIndex,
        planned_ids: Iterable[str],
        researched_ids: Iterable[str] = (),
        research_output: dict[str, float] | None = None,
    ):
        """Initialize solver."""
        self.index = index
        self.planned_ids = list(planned_ids)
        self.researched_ids = set(researched_ids)
        self.research_output = research_output or {}

    def solve(self) -> ResearchSchedule | None:
        """Simulate until every task is scheduled; None if the plan deadlocks."""
        tasks = collect_research_tasks(
            self.index, self.planned_ids, self.researched_ids, self.research_output
        )
        remaining = {task.technology.id: task for task in tasks}
        lane_free_at = {task.lane: 0 for task in tasks}
        finish_day: dict[str, int] = {}
        actions: list[ResearchAction] = []
        day = 0

        while remaining:
            for lane in sorted(lane_free_at):
                if lane_free_at[lane] > day:
                    continue

                ready = [
                    task
                    for task in remaining.values()
                    if task.lane == lane
                    and all(finish_day.get(p, math.inf) <= day for p in task.prerequisites)
                ]
                if not ready:
                    continue

                task = min(
                    ready,
                    key=lambda t: (t.technology.tier, t.technology.cost, t.technology.id),
                )
                end = day + task.duration_days
                actions.append(
                    ResearchAction(
                        technology=task.technology,
                        lane=lane,
                        start_day=day,
                        end_day=end,
                    )
                )
                lane_free_at[lane] = end
                finish_day[task.technology.id] = end
                del remaining[task.technology.id]

            upcoming = [d for d in finish_day.values() if d > day]
            if not upcoming:
                if remaining:
                    logger.warning(
                        "Research plan deadlocked with %d tasks left: %s",
                        len(remaining),
                        ", ".join(sorted(remaining)),
                    )
                    return None
                break
            day = min(upcoming)

        return ResearchSchedule(
            actions=sorted(actions, key=lambda a: (a.start_day, a.lane)),
            total_days=max((a.end_day for a in actions), default=0),
        )
