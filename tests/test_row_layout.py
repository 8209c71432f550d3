import pytest

from config import LayoutConfig
from models import RelationshipEdge
from routing import CHILD, MARRIAGE
from row_layout import layout_rows


def centers(nodes):
    return [n.x + n.width / 2 for n in nodes]


def overlaps(a, b):
    return a.x < b.x + b.width and b.x < a.x + a.width and a.y < b.y + b.height and b.y < a.y + a.height


def test_siblings_root_spouse_row_and_centered_children():
    rels = [
        RelationshipEdge(2, "siblings"),
        RelationshipEdge(3, "siblings"),
        RelationshipEdge(4, "spouse"),
        RelationshipEdge(5, "children"),
        RelationshipEdge(6, "children"),
        RelationshipEdge(7, "children"),
    ]
    placement = layout_rows(1, set(range(1, 8)), rels, LayoutConfig())
    nodes = {n.person_id: n for n in placement.nodes}

    gen0 = sorted((n for n in placement.nodes if n.generation == 0), key=lambda n: n.x)
    assert [n.person_id for n in gen0] == [2, 3, 1, 4]

    # Couple gap between root and spouse, normal gap elsewhere
    assert nodes[4].x - (nodes[1].x + nodes[1].width) == 16
    assert nodes[1].x - (nodes[3].x + nodes[3].width) == 24
    assert nodes[1].couple_with == 4
    assert nodes[4].couple_with == 1

    couple_center = (centers([nodes[1]])[0] + centers([nodes[4]])[0]) / 2
    children = [n for n in placement.nodes if n.generation == 1]
    assert len(children) == 3
    assert sum(centers(children)) / 3 == pytest.approx(couple_center)
    assert placement.child_anchor_x == pytest.approx(couple_center)


def test_children_center_under_single_root():
    rels = [RelationshipEdge(2, "children"), RelationshipEdge(3, "children")]
    placement = layout_rows(1, {1, 2, 3}, rels, LayoutConfig())
    root = next(n for n in placement.nodes if n.is_root)
    children = [n for n in placement.nodes if n.generation == 1]

    assert sum(centers(children)) / 2 == root.x + root.width / 2


def test_full_family_rows(family_tree):
    rels = [
        RelationshipEdge(1, "grandparents", from_id=3),
        RelationshipEdge(2, "grandparents", from_id=3),
        RelationshipEdge(3, "parents"),
        RelationshipEdge(4, "parents"),
        RelationshipEdge(6, "siblings"),
        RelationshipEdge(7, "siblings"),
        RelationshipEdge(8, "spouse"),
        RelationshipEdge(9, "children"),
        RelationshipEdge(10, "children"),
        RelationshipEdge(11, "children"),
        RelationshipEdge(12, "grandchildren", from_id=9),
    ]
    placement = layout_rows(5, set(range(1, 13)), rels, LayoutConfig())
    nodes = {n.person_id: n for n in placement.nodes}

    assert set(nodes) == set(range(1, 13))
    assert [n for n in placement.nodes if n.is_root] == [nodes[5]]

    # Rows stack top to bottom with compact cards two generations away
    assert nodes[1].y == 0
    assert nodes[1].size == "compact"
    assert nodes[1].width == 144
    assert nodes[3].y == 136 + 100
    assert nodes[5].y == 236 + 160 + 100
    assert nodes[9].y == 496 + 160 + 100
    assert nodes[12].y == 756 + 160 + 100
    assert nodes[12].size == "compact"

    # Ancestor rows center on the root
    root_center = nodes[5].x + nodes[5].width / 2
    assert sum(centers([nodes[3], nodes[4]])) / 2 == pytest.approx(root_center)
    assert sum(centers([nodes[1], nodes[2]])) / 2 == pytest.approx(root_center)

    placed = list(nodes.values())
    for i, a in enumerate(placed):
        for b in placed[i + 1:]:
            assert not overlaps(a, b), (a.person_id, b.person_id)


def test_connectors(family_tree):
    rels = [
        RelationshipEdge(3, "parents"),
        RelationshipEdge(6, "siblings"),
        RelationshipEdge(8, "spouse"),
        RelationshipEdge(9, "children"),
        RelationshipEdge(12, "grandchildren", from_id=9),
    ]
    placement = layout_rows(5, set(range(1, 13)), rels, LayoutConfig())
    links = {(r.from_id, r.to_id): r for r in placement.requests}

    assert set(links) == {(5, 8), (5, 6), (3, 5), (5, 9), (9, 12)}
    assert links[5, 8].kind == MARRIAGE
    assert links[5, 8].type == "spouse"
    assert links[5, 6].type == "sibling"
    assert links[3, 5].kind == CHILD

    # Spouse connector joins facing sides at mid height
    root = next(n for n in placement.nodes if n.person_id == 5)
    assert links[5, 8].source.x == root.x + root.width
    assert links[5, 8].source.y == root.y + root.height / 2

    # Lineage connectors run bottom-centre to top-centre
    child = next(n for n in placement.nodes if n.person_id == 9)
    assert links[5, 9].source.y == root.y + root.height
    assert links[5, 9].target.x == child.x + child.width / 2
    assert links[5, 9].target.y == child.y


def test_person_is_placed_once_and_unknown_ids_dropped():
    rels = [
        RelationshipEdge(2, "children"),
        RelationshipEdge(2, "spouse"),
        RelationshipEdge(99, "children"),
        RelationshipEdge(3, "in-laws"),
    ]
    placement = layout_rows(1, {1, 2, 3}, rels, LayoutConfig())

    assert sorted(n.person_id for n in placement.nodes) == [1, 2]
    assert next(n for n in placement.nodes if n.person_id == 2).generation == 0
    assert [g.category for g in placement.overflow] == ["in-laws"]
