"""Graph index tests: lookups, reverse map, integrity errors."""

import pytest

from conftest import make_tech
from techtree_planner.engine.index import GraphIndex
from techtree_planner.errors import DuplicateIdError, NotFoundError


class TestBuild:
    def test_indexes_every_record(self, index, technologies):
        assert len(index) == len(technologies)
        assert all(tech.id in index for tech in technologies)

    def test_duplicate_id_rejected(self):
        techs = [make_tech("lasers1"), make_tech("lasers1", tier=2)]
        with pytest.raises(DuplicateIdError) as excinfo:
            GraphIndex.build(techs)
        assert excinfo.value.tech_id == "lasers1"

    def test_empty_catalog(self):
        index = GraphIndex.build([])
        assert len(index) == 0
        assert index.roots() == []

    def test_rebuild_is_independent(self, technologies):
        first = GraphIndex.build(technologies)
        second = GraphIndex.build(technologies[:3])
        assert len(first) == len(technologies)
        assert len(second) == 3


class TestLookup:
    def test_lookup_known(self, index):
        assert index.lookup("tech_cruisers").name == "Cruisers"

    def test_lookup_unknown_raises(self, index):
        with pytest.raises(NotFoundError):
            index.lookup("tech_missing")

    def test_not_found_is_key_error(self, index):
        with pytest.raises(KeyError):
            index.lookup("tech_missing")

    def test_get_returns_none(self, index):
        assert index.get("tech_missing") is None


class TestDependents:
    def test_dependents_of_power_plant(self, index):
        ids = {tech.id for tech in index.dependents_of("tech_power_plant_2")}
        assert ids == {"tech_battleships", "tech_advanced_shields"}

    def test_leaf_has_no_dependents(self, index):
        assert index.dependents_of("tech_battleships") == []

    def test_dependents_of_unknown_raises(self, index):
        with pytest.raises(NotFoundError):
            index.dependents_of("tech_missing")

    def test_prerequisites_of_skips_dangling(self):
        index = GraphIndex.build(
            [make_tech("a"), make_tech("b", tier=1, prerequisites=("a", "ghost"))]
        )
        assert [tech.id for tech in index.prerequisites_of("b")] == ["a"]
        assert index.dangling_references() == [("b", "ghost")]


class TestGroupings:
    def test_axes(self, index):
        assert index.categories() == ["engineering", "physics", "society"]
        assert index.tiers() == [0, 1, 2, 3]
        assert "weapons" in index.areas()

    def test_roots(self, index):
        root_ids = {tech.id for tech in index.roots()}
        assert "tech_corvettes" in root_ids
        assert "tech_cruisers" not in root_ids

    def test_by_tier(self, index):
        assert {tech.id for tech in index.by_tier(3)} == {
            "tech_battleships",
            "tech_advanced_shields",
        }
