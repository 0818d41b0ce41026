"""CP-SAT solver for research order optimization using OR-Tools."""

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from ortools.sat.python import cp_model

from techtree_planner.engine.index import GraphIndex
from techtree_planner.models import ResearchAction, ResearchSchedule
from techtree_planner.solvers.greedy_research_solver import (
    ResearchTask,
    collect_research_tasks,
)

logger = logging.getLogger(__name__)


@dataclass
class TaskVars:
    """Model variables of one research task."""

    task: ResearchTask
    start_var: cp_model.IntVar
    end_var: cp_model.IntVar
    interval_var: cp_model.IntervalVar


class CPSATResearchSolver:
    """
    OR-Tools CP-SAT solver for the shortest research plan.

    Models:
    - One interval per technology, length = research days
    - Precedence: a technology starts after all its planned prerequisites end
    - One lane per category: no overlap within a lane
    - Objective: minimize makespan
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

    def solve(self, time_limit_seconds: float = 60.0) -> ResearchSchedule | None:
        """Solve the model; None when infeasible (e.g. a prerequisite cycle)."""
        tasks = collect_research_tasks(
            self.index, self.planned_ids, self.researched_ids, self.research_output
        )
        if not tasks:
            return ResearchSchedule(actions=[], total_days=0, optimal=True)

        model = cp_model.CpModel()

        # Everything in sequence is always feasible for an acyclic plan
        horizon = sum(task.duration_days for task in tasks)

        task_vars = self._create_tasks(model, tasks, horizon)
        self._add_precedence_constraints(model, task_vars)
        self._add_lane_constraints(model, task_vars)

        makespan = model.new_int_var(0, horizon, "makespan")
        model.add_max_equality(makespan, [tv.end_var for tv in task_vars.values()])
        model.minimize(makespan)

        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = time_limit_seconds
        solver.parameters.num_workers = 8

        status = solver.solve(model)

        if status in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            return self._extract_solution(solver, task_vars, status == cp_model.OPTIMAL)

        logger.warning("CP-SAT found no research plan (status %s)", solver.status_name(status))
        return None

    def _create_tasks(
        self, model: cp_model.CpModel, tasks: list[ResearchTask], horizon: int
    ) -> dict[str, TaskVars]:
        """Create start/end/interval variables per technology."""
        task_vars = {}
        for task in tasks:
            tech_id = task.technology.id
            start = model.new_int_var(0, horizon, f"{tech_id}_start")
            end = model.new_int_var(0, horizon, f"{tech_id}_end")
            interval = model.new_interval_var(start, task.duration_days, end, tech_id)
            task_vars[tech_id] = TaskVars(
                task=task, start_var=start, end_var=end, interval_var=interval
            )
        return task_vars

    def _add_precedence_constraints(
        self, model: cp_model.CpModel, task_vars: dict[str, TaskVars]
    ):
        """A technology cannot start before its prerequisites are researched."""
        for tv in task_vars.values():
            for prereq_id in tv.task.prerequisites:
                model.add(tv.start_var >= task_vars[prereq_id].end_var)

    def _add_lane_constraints(
        self, model: cp_model.CpModel, task_vars: dict[str, TaskVars]
    ):
        """Enforce no-overlap within each research lane."""
        lanes = defaultdict(list)
        for tv in task_vars.values():
            lanes[tv.task.lane].append(tv.interval_var)

        for intervals in lanes.values():
            model.add_no_overlap(intervals)

    def _extract_solution(
        self, solver: cp_model.CpSolver, task_vars: dict[str, TaskVars], optimal: bool
    ) -> ResearchSchedule:
        """Extract solution from solver."""
        actions = [
            ResearchAction(
                technology=tv.task.technology,
                lane=tv.task.lane,
                start_day=solver.value(tv.start_var),
                end_day=solver.value(tv.end_var),
            )
            for tv in task_vars.values()
        ]
        actions.sort(key=lambda a: (a.start_day, a.lane))

        return ResearchSchedule(
            actions=actions,
            total_days=max(a.end_day for a in actions),
            optimal=optimal,
        )
