import copy

import networkx as nx
import pytest

from config import LayoutConfig
from engine import HierarchicalPlacementStrategy, LayoutCache, _couple_partners, compute_layout, content_key
from errors import PlacementError
from graph import build_union_layout_graph
from models import ChildLink, FamilyUnit, NodeBounds, Person, TreeInput
from obstacles import ObstacleIndex
from routing import CHILD, MARRIAGE


class ColumnRankComputer:
    def compute_ranks(self, graph):
        bounds = {}
        for rank, layer in enumerate(nx.topological_generations(graph)):
            for i, node in enumerate(sorted(layer)):
                data = graph.nodes[node]
                bounds[node] = NodeBounds(i * 260, rank * 200, data["width"], data["height"])
        return bounds


class BrokenRankComputer:
    def compute_ranks(self, graph):
        raise PlacementError("dot not found")


def test_row_layout_places_everyone_once(family_tree):
    layout = compute_layout(family_tree)

    ids = [n.person_id for n in layout.nodes]
    assert sorted(ids) == list(range(1, 13))
    assert layout.root_node.person_id == 5
    assert layout.root_node.generation == 0
    assert layout.overflow == []


def test_layout_is_normalized(family_tree):
    layout = compute_layout(family_tree)

    assert min(n.x for n in layout.nodes) == 60
    assert min(n.y for n in layout.nodes) == 60
    assert layout.width == max(n.x + n.width for n in layout.nodes) + 60
    assert layout.height == max(n.y + n.height for n in layout.nodes) + 60


def test_connectors_avoid_other_nodes(family_tree):
    layout = compute_layout(family_tree)
    index = ObstacleIndex({f"person_{n.person_id}": n.bounds for n in layout.nodes})

    assert len([e for e in layout.edges if e.kind == CHILD]) == 8
    assert len([e for e in layout.edges if e.kind == MARRIAGE]) == 3
    for edge in layout.edges:
        exclude = {f"person_{edge.from_id}", f"person_{edge.to_id}"}
        assert index.path_obstacles(list(edge.route_points), exclude) == [], (edge.from_id, edge.to_id)


def test_edges_start_and_end_on_their_nodes(family_tree):
    layout = compute_layout(family_tree)
    nodes = {n.person_id: n for n in layout.nodes}

    for edge in layout.edges:
        if edge.kind != CHILD:
            continue
        parent, child = nodes[edge.from_id], nodes[edge.to_id]
        assert edge.route_points[0].y == parent.y + parent.height
        assert edge.route_points[-1].y == child.y
        assert edge.route_points[-1].x == child.x + child.width / 2


def test_layout_is_deterministic(family_tree):
    first = compute_layout(family_tree).to_dict()
    second = compute_layout(copy.deepcopy(family_tree)).to_dict()

    assert first == second


def test_unknown_root_gives_empty_layout(family_tree):
    family_tree.root_id = 404
    layout = compute_layout(family_tree)

    assert layout.nodes == []
    assert layout.edges == []
    assert (layout.width, layout.height) == (0, 0)


def test_lone_person():
    layout = compute_layout(TreeInput(root_id=1, persons=[Person(1)]))

    assert len(layout.nodes) == 1
    assert layout.edges == []
    assert (layout.width, layout.height) == (176 + 120, 160 + 120)


def test_unknown_placement_is_rejected(family_tree):
    with pytest.raises(ValueError):
        compute_layout(family_tree, LayoutConfig(placement="radial"))


def test_hierarchical_placement(family_tree):
    config = LayoutConfig(placement="hierarchical")
    strategy = HierarchicalPlacementStrategy(ColumnRankComputer())

    layout = compute_layout(family_tree, config, strategy)

    assert sorted(n.person_id for n in layout.nodes) == list(range(1, 13))
    assert layout.root_node.person_id == 5
    assert {j.variant for j in layout.junction_nodes} == {"pair", "bus"}
    assert {e.kind for e in layout.edges} == {"marriage", "trunk", "child"}

    nodes = {n.person_id: n for n in layout.nodes}
    for node in layout.nodes:
        if node.couple_with is not None:
            assert nodes[node.couple_with].couple_with == node.person_id
    assert nodes[3].generation == -1
    assert nodes[9].generation == 1
    assert nodes[5].couple_with == 8
    assert nodes[8].couple_with == 5
    assert nodes[8].y == nodes[5].y
    assert nodes[8].x - (nodes[5].x + nodes[5].width) == pytest.approx(40 + 2 * 16)

    for edge in layout.edges:
        assert len(edge.route_points) >= 2

    again = compute_layout(copy.deepcopy(family_tree), config, HierarchicalPlacementStrategy(ColumnRankComputer()))
    assert again.to_dict() == layout.to_dict()


def test_hierarchical_placement_falls_back_to_grid(family_tree, caplog):
    strategy = HierarchicalPlacementStrategy(BrokenRankComputer())

    layout = compute_layout(family_tree, LayoutConfig(placement="hierarchical"), strategy)

    assert "using grid layout" in caplog.text
    assert sorted(n.person_id for n in layout.nodes) == list(range(1, 13))
    assert layout.junction_nodes == []
    assert {e.kind for e in layout.edges} == {CHILD}
    assert len({n.x for n in layout.nodes}) == 4
    assert all(n.couple_with is None for n in layout.nodes)


def test_person_with_two_partners_is_coupled_once():
    persons = [Person(1, gender="MALE"), Person(2, gender="FEMALE"), Person(3, gender="FEMALE")]
    units = [FamilyUnit(1, partners=[1, 2]), FamilyUnit(2, partners=[1, 3])]
    tree = TreeInput(root_id=1, persons=persons, family_units=units)

    layout = compute_layout(tree, LayoutConfig(placement="hierarchical"), HierarchicalPlacementStrategy(ColumnRankComputer()))

    couples = {n.person_id: n.couple_with for n in layout.nodes}
    assert couples == {1: 2, 2: 1, 3: None}
    nodes = sorted(layout.nodes, key=lambda n: n.x)
    for left, right in zip(nodes, nodes[1:]):
        assert right.x >= left.x + left.width


def test_couple_partner_follows_numeric_unit_order():
    persons = [Person(1, gender="MALE"), Person(2, gender="FEMALE"), Person(3, gender="FEMALE")]
    units = [FamilyUnit(10, partners=[1, 2]), FamilyUnit(2, partners=[1, 3])]
    graph = build_union_layout_graph(persons, units)
    bounds = {
        "person_2": NodeBounds(-272, 0, 200, 140),
        "person_1": NodeBounds(0, 0, 200, 140),
        "person_3": NodeBounds(272, 0, 200, 140),
    }

    assert _couple_partners(graph, bounds, couple_gap=16) == {1: 3, 3: 1}


def test_couple_needs_adjacent_cards():
    persons = [Person(1, gender="MALE"), Person(2, gender="FEMALE")]
    graph = build_union_layout_graph(persons, [FamilyUnit(1, partners=[1, 2])])
    bounds = {
        "person_1": NodeBounds(0, 0, 200, 140),
        "person_2": NodeBounds(900, 0, 200, 140),
    }

    assert _couple_partners(graph, bounds, couple_gap=16) == {}


def test_placed_relatives_are_not_repeated_in_overflow():
    persons = [Person(i) for i in range(1, 6)]
    units = [
        FamilyUnit(1, partners=[1, 2], children=[ChildLink(3)]),
        FamilyUnit(2, partners=[3, 4], children=[ChildLink(5)]),
    ]
    tree = TreeInput(root_id=1, persons=persons, family_units=units)

    rows = compute_layout(tree)
    assert 4 not in {n.person_id for n in rows.nodes}
    assert [r.to_id for group in rows.overflow for r in group.relationships] == [4]

    layout = compute_layout(tree, LayoutConfig(placement="hierarchical"), HierarchicalPlacementStrategy(ColumnRankComputer()))
    assert sorted(n.person_id for n in layout.nodes) == [1, 2, 3, 4, 5]
    assert layout.overflow == []


def test_cache_keys_on_content(family_tree):
    cache = LayoutCache()

    first = cache.get_layout(family_tree)
    second = cache.get_layout(copy.deepcopy(family_tree))

    assert second is first
    assert (cache.hits, cache.misses) == (1, 1)

    other = copy.deepcopy(family_tree)
    other.root_id = 3
    assert cache.get_layout(other) is not first
    assert cache.misses == 2
    assert len(cache) == 2


def test_cache_evicts_least_recently_used(family_tree):
    cache = LayoutCache(max_size=1)
    other = copy.deepcopy(family_tree)
    other.root_id = 3

    cache.get_layout(family_tree)
    cache.get_layout(other)
    cache.get_layout(family_tree)

    assert len(cache) == 1
    assert cache.misses == 3


def test_content_key_depends_on_config(family_tree):
    assert content_key(family_tree, LayoutConfig()) != content_key(family_tree, LayoutConfig(h_gap=40))
    assert content_key(family_tree, LayoutConfig()) == content_key(copy.deepcopy(family_tree), LayoutConfig())
