"""Research order tests for the greedy and CP-SAT solvers."""

import pytest

from conftest import make_tech
from techtree_planner.solvers.cpsat_research_solver import CPSATResearchSolver
from techtree_planner.solvers.greedy_research_solver import (
    GreedyResearchSolver,
    collect_research_tasks,
    research_duration,
)

SOLVERS = [GreedyResearchSolver, CPSATResearchSolver]


def assert_valid(schedule, index, researched=()):
    end = {a.technology.id: a.end_day for a in schedule.actions}
    for action in schedule.actions:
        for prereq_id in action.technology.prerequisites:
            if prereq_id in researched or prereq_id not in index:
                continue
            assert end[prereq_id] <= action.start_day
    for actions in schedule.by_lane().values():
        for before, after in zip(actions, actions[1:]):
            assert before.end_day <= after.start_day


class TestTasks:
    def test_duration_rounds_up(self):
        assert research_duration(make_tech("t", cost=101)) == 11
        assert research_duration(make_tech("t", cost=0)) == 1

    def test_duration_uses_lane_output(self):
        tech = make_tech("t", cost=100, category="society")
        assert research_duration(tech, {"society": 25}) == 4

    def test_researched_excluded(self, index):
        tasks = collect_research_tasks(index, ["tech_battleships"], ["tech_corvettes"])
        ids = {task.technology.id for task in tasks}
        assert "tech_corvettes" not in ids
        assert "tech_battleships" in ids
        destroyers = next(t for t in tasks if t.technology.id == "tech_destroyers")
        assert destroyers.prerequisites == ()


@pytest.mark.parametrize("solver_cls", SOLVERS)
class TestSolvers:
    def test_chain(self, solver_cls, lasers):
        schedule = solver_cls(lasers, ["lasers2"]).solve()
        assert [a.technology.id for a in schedule.actions] == ["lasers1", "lasers2"]
        assert schedule.total_days == 20

    def test_single_lane_is_sequential(self, solver_cls, index):
        schedule = solver_cls(index, ["tech_battleships"]).solve()
        assert schedule.total_days == 220
        assert_valid(schedule, index)

    def test_two_lanes_in_parallel(self, solver_cls, index):
        schedule = solver_cls(index, ["tech_advanced_shields"]).solve()
        assert schedule.total_days == 125
        assert set(schedule.by_lane()) == {"physics", "engineering"}
        assert_valid(schedule, index)

    def test_research_output(self, solver_cls, index):
        schedule = solver_cls(
            index, ["tech_advanced_shields"], research_output={"physics": 20}
        ).solve()
        assert schedule.total_days == 75

    def test_researched_progress(self, solver_cls, index):
        researched = ["tech_corvettes", "tech_destroyers", "tech_power_plant_1"]
        schedule = solver_cls(index, ["tech_battleships"], researched).solve()
        assert {a.technology.id for a in schedule.actions} == {
            "tech_cruisers",
            "tech_power_plant_2",
            "tech_battleships",
        }
        assert_valid(schedule, index, researched)

    def test_empty_plan(self, solver_cls, index):
        schedule = solver_cls(index, []).solve()
        assert schedule.actions == []
        assert schedule.total_days == 0

    def test_cycle_has_no_schedule(self, solver_cls, cyclic):
        assert solver_cls(cyclic, ["d"]).solve() is None


def test_cpsat_reports_optimal(index):
    schedule = CPSATResearchSolver(index, ["tech_advanced_shields"]).solve()
    assert schedule.optimal is True
