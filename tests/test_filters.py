"""Filter engine tests: axis filters, prerequisite expansion, search."""

from conftest import make_tech
from techtree_planner.engine.filters import (
    active_filter_count,
    apply_filters,
    default_filters,
    search,
)
from techtree_planner.engine.index import GraphIndex
from techtree_planner.models import FilterSettings


def settings(index, **overrides) -> FilterSettings:
    defaults = default_filters(index)
    values = {
        "categories": defaults.categories,
        "areas": defaults.areas,
        "tiers": defaults.tiers,
        "include_prerequisites": True,
    }
    values.update(overrides)
    return FilterSettings(**values)


class TestAxisFilters:
    def test_defaults_show_everything(self, index):
        result = apply_filters(index, default_filters(index))
        assert len(result.visible) == len(index)

    def test_category_only(self, index):
        f = settings(index, categories=frozenset({"society"}), include_prerequisites=False)
        assert {t.category for t in apply_filters(index, f).visible} == {"society"}

    def test_axes_intersect(self, index):
        f = settings(
            index,
            categories=frozenset({"physics"}),
            areas=frozenset({"weapons"}),
            tiers=frozenset({1, 2}),
            include_prerequisites=False,
        )
        assert set(apply_filters(index, f).ids) == {"tech_lasers_2", "tech_lasers_3"}

    def test_empty_selection(self, index):
        f = settings(index, tiers=frozenset())
        assert apply_filters(index, f).visible == []


class TestIncludePrerequisites:
    def test_cross_category_prerequisite_pulled_in(self, index):
        f = settings(index, categories=frozenset({"physics"}))
        ids = set(apply_filters(index, f).ids)
        assert "tech_power_plant_2" in ids
        assert "tech_power_plant_1" in ids
        assert "tech_battleships" not in ids

    def test_without_expansion(self, index):
        f = settings(index, categories=frozenset({"physics"}), include_prerequisites=False)
        assert "tech_power_plant_2" not in apply_filters(index, f).ids

    def test_no_duplicates(self, index):
        f = settings(index, tiers=frozenset({2, 3}))
        ids = apply_filters(index, f).ids
        assert len(ids) == len(set(ids))

    def test_added_prerequisites_are_not_filtered(self, index):
        f = settings(index, tiers=frozenset({3}))
        ids = set(apply_filters(index, f).ids)
        assert {"tech_corvettes", "tech_shields_1"} <= ids

    def test_idempotent(self, index):
        for include in (True, False):
            f = settings(
                index,
                categories=frozenset({"physics", "society"}),
                tiers=frozenset({1, 2, 3}),
                include_prerequisites=include,
            )
            first = apply_filters(index, f)
            second = apply_filters(GraphIndex.build(first.visible), f)
            assert set(second.ids) == set(first.ids)


class TestActiveFilterCount:
    def test_defaults_count_zero(self, index):
        assert active_filter_count(default_filters(index), index) == 0

    def test_counts_disabled_values(self, index):
        f = settings(
            index,
            categories=frozenset({"physics"}),
            include_prerequisites=False,
        )
        assert active_filter_count(f, index) == 3


class TestSearch:
    def test_matches_name_case_insensitive(self, index):
        assert [t.id for t in search(index, "LASERS")] == [
            "tech_lasers_1",
            "tech_lasers_2",
            "tech_lasers_3",
        ]

    def test_matches_description(self, index):
        assert [t.id for t in search(index, "patrol")] == ["tech_corvettes"]

    def test_blank_query(self, index):
        assert search(index, "   ") == []


def test_dangling_reference_logged_once(caplog):
    index = GraphIndex.build(
        [
            make_tech("a", prerequisites=("ghost",)),
            make_tech("b", tier=1, prerequisites=("a",)),
            make_tech("c", tier=2, prerequisites=("b",)),
        ]
    )
    with caplog.at_level("WARNING"):
        result = apply_filters(index, default_filters(index))
    assert len(result.warnings) == 1
    assert sum("ghost" in r.getMessage() for r in caplog.records) == 1
