"""Layout engine tests: grid positions and the rendering payload."""

import pytest

from conftest import make_tech
from techtree_planner.engine.layout import (
    LayoutConfig,
    build_graph_view,
    edge_id,
    position,
)
from techtree_planner.models import Coordinate


class TestPosition:
    @pytest.mark.parametrize(
        "category, tier, area, expected",
        [
            ("physics", 0, "weapons", Coordinate(0.0, 0.0)),
            ("physics", 1, "shields", Coordinate(250.0, 200.0)),
            ("society", 0, "biology", Coordinate(1000.0, 0.0)),
            ("engineering", 2, "ships", Coordinate(1750.0, 400.0)),
            ("engineering", 3, "power", Coordinate(1500.0, 600.0)),
        ],
    )
    def test_known_slots(self, category, tier, area, expected):
        assert position(category, tier, area) == expected

    def test_unknown_area_uses_other_slot(self):
        assert position("physics", 0, "computing") == Coordinate(500.0, 0.0)
        assert position("society", 1, "statecraft") == Coordinate(1250.0, 200.0)

    def test_unknown_category_gets_extra_lane(self):
        assert position("psionics", 0, "mind") == Coordinate(2750.0, 0.0)

    def test_deterministic(self):
        assert position("society", 4, "biology") == position("society", 4, "biology")

    def test_areas_in_same_lane_do_not_overlap(self):
        config = LayoutConfig()
        xs = [position("physics", 1, area).x for area in ("weapons", "shields", "other")]
        for left, right in zip(xs, xs[1:]):
            assert right - left >= config.node_width

    def test_lanes_do_not_overlap(self):
        last_physics = position("physics", 0, "other").x
        first_society = position("society", 0, "research").x
        assert first_society - last_physics >= LayoutConfig().node_width

    def test_custom_config(self):
        config = LayoutConfig(tier_spacing=120, category_spacing=1000)
        assert position("society", 2, "research", config) == Coordinate(1000.0, 240.0)


class TestGraphView:
    def test_edge_id_format(self):
        assert edge_id("tech_lasers_1", "tech_lasers_2") == "tech_lasers_1-tech_lasers_2"

    def test_nodes_and_edges(self, index):
        view = build_graph_view(index)
        assert len(view.nodes) == len(index)
        edge_ids = {edge.id for edge in view.edges}
        assert "tech_cruisers-tech_battleships" in edge_ids
        assert "tech_power_plant_2-tech_advanced_shields" in edge_ids
        edge = next(e for e in view.edges if e.id == "tech_lasers_1-tech_lasers_2")
        assert (edge.source, edge.target) == ("tech_lasers_1", "tech_lasers_2")

    def test_edges_to_hidden_nodes_omitted(self, index):
        view = build_graph_view([index.lookup("tech_lasers_2")])
        assert view.edges == []

    def test_to_dict(self, lasers):
        payload = build_graph_view(lasers).to_dict()
        assert payload["edges"] == [
            {"id": "lasers1-lasers2", "source": "lasers1", "target": "lasers2"}
        ]
        node = payload["nodes"][1]
        assert node["id"] == "lasers2"
        assert node["position"] == {"x": 0.0, "y": 200.0}
        assert node["data"]["prerequisites"] == ["lasers1"]

    def test_duplicate_prerequisite_single_edge(self):
        techs = [make_tech("a"), make_tech("b", tier=1, prerequisites=("a", "a"))]
        assert len(build_graph_view(techs).edges) == 1


class TestLayoutConfigImmutable:
    def test_maps_are_read_only(self):
        config = LayoutConfig()
        with pytest.raises(TypeError):
            config.category_lanes["physics"] = 5
        with pytest.raises(TypeError):
            config.area_slots["physics"]["weapons"] = 3
        assert LayoutConfig().lane_of("physics") == 0

    def test_caller_dict_is_copied(self):
        lanes = {"physics": 0}
        config = LayoutConfig(category_lanes=lanes)
        lanes["physics"] = 9
        assert config.lane_of("physics") == 0

    def test_hashable_and_comparable(self):
        assert hash(LayoutConfig()) == hash(LayoutConfig())
        assert LayoutConfig() == LayoutConfig()
        assert LayoutConfig(tier_spacing=1) != LayoutConfig()
