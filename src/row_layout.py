"""Generation-row placement centred on the root person."""

import logging
from dataclasses import dataclass, field

from config import LayoutConfig
from generations import group_by_generation
from graph import person_node_id
from models import LayoutNode, OverflowGroup, RelationshipEdge, RoutePoint
from routing import CHILD, MARRIAGE, RouteRequest

logger = logging.getLogger(__name__)


@dataclass
class RowPlacement:
    nodes: list[LayoutNode] = field(default_factory=list)
    requests: list[RouteRequest] = field(default_factory=list)
    overflow: list[OverflowGroup] = field(default_factory=list)
    child_anchor_x: float = 0.0


def layout_rows(
    root_id: int,
    person_ids: set[int],
    relationships: list[RelationshipEdge],
    config: LayoutConfig,
) -> RowPlacement:
    """
    Place the root's relatives in one row per generation.

    Generation 0 is [siblings..., root, spouses...] centred at x = 0, with the
    reduced couple gap between the root and its first spouse. Ancestor rows are
    centred under the root; descendant rows under the midpoint between root
    and first spouse (the root alone when there is no spouse). Each person is
    placed once, in the first row that claims them.

    Args:
        root_id: Id of the root person (must be in `person_ids`)
        person_ids: Ids of all known persons; other references are dropped
        relationships: Relationship edges relative to the root
        config: Card sizes and gaps

    Returns:
        Placed nodes, the connectors to route between them and overflow groups
    """
    known = [r for r in relationships if r.to_id in person_ids and r.to_id != root_id]
    if len(known) != len(relationships):
        logger.debug("Dropped %d relationships with unknown persons", len(relationships) - len(known))

    rows, overflow = group_by_generation(known)

    # Each person appears in exactly one row
    seen = {root_id}
    members: dict[int, list[RelationshipEdge]] = {}
    for generation in sorted(rows, key=lambda g: (abs(g), g)):
        for rel in rows[generation]:
            if rel.to_id in seen:
                continue
            seen.add(rel.to_id)
            members.setdefault(generation, []).append(rel)

    siblings = [r for r in members.get(0, []) if r.category == "siblings"]
    spouses = [r for r in members.get(0, []) if r.category == "spouse"]

    # Y per generation, top to bottom
    generations = sorted(set(members) | {0})
    row_y: dict[int, float] = {}
    current_y = 0.0
    for generation in generations:
        row_y[generation] = current_y
        current_y += config.card_size(generation)[1] + config.v_gap

    nodes: dict[int, LayoutNode] = {}
    labels = {r.to_id: r.label for r in known}

    # Generation 0: [siblings...] [ROOT] [spouses...]
    gen0 = [r.to_id for r in siblings] + [root_id] + [r.to_id for r in spouses]
    first_spouse = spouses[0].to_id if spouses else None
    width, height = config.card_size(0)

    def is_couple(a: int, b: int) -> bool:
        return {a, b} == {root_id, first_spouse}

    total_width = len(gen0) * width + sum(
        config.couple_gap if is_couple(a, b) else config.h_gap for a, b in zip(gen0, gen0[1:])
    )
    x = -total_width / 2
    for i, pid in enumerate(gen0):
        if i > 0:
            x += config.couple_gap if is_couple(gen0[i - 1], pid) else config.h_gap
        couple_with = None
        if pid == root_id:
            couple_with = first_spouse
        elif pid == first_spouse:
            couple_with = root_id
        nodes[pid] = LayoutNode(
            person_id=pid,
            x=x,
            y=row_y[0],
            width=width,
            height=height,
            generation=0,
            is_root=pid == root_id,
            couple_with=couple_with,
            label=labels.get(pid),
        )
        x += width

    root_center_x = nodes[root_id].bounds.center_x
    couple_center_x = root_center_x
    if first_spouse is not None:
        couple_center_x = (root_center_x + nodes[first_spouse].bounds.center_x) / 2

    def place_generation(generation: int, center_x: float):
        rels = members.get(generation, [])
        if not rels:
            return
        w, h = config.card_size(generation)
        row_width = len(rels) * w + (len(rels) - 1) * config.h_gap
        start_x = center_x - row_width / 2
        for rel in rels:
            nodes[rel.to_id] = LayoutNode(
                person_id=rel.to_id,
                x=start_x,
                y=row_y[generation],
                width=w,
                height=h,
                generation=generation,
                size="compact" if config.is_compact(generation) else "normal",
                label=rel.label,
            )
            start_x += w + config.h_gap

    # Ancestors above the root, descendants under the couple
    place_generation(-1, root_center_x)
    place_generation(-2, root_center_x)
    place_generation(1, couple_center_x)
    place_generation(2, couple_center_x)

    ordered = [nodes[pid] for pid in gen0]
    for generation in generations:
        if generation != 0:
            ordered.extend(nodes[r.to_id] for r in members.get(generation, []))

    return RowPlacement(
        nodes=ordered,
        requests=_row_connectors(root_id, nodes, members),
        overflow=overflow,
        child_anchor_x=couple_center_x,
    )


def _row_connectors(
    root_id: int, nodes: dict[int, LayoutNode], members: dict[int, list[RelationshipEdge]]
) -> list[RouteRequest]:
    requests: list[RouteRequest] = []

    def side_link(from_id: int, to_id: int, edge_type: str):
        a, b = nodes[from_id].bounds, nodes[to_id].bounds
        if a.x <= b.x:
            source, target = RoutePoint(a.right, a.center_y), RoutePoint(b.x, b.center_y)
        else:
            source, target = RoutePoint(a.x, a.center_y), RoutePoint(b.right, b.center_y)
        requests.append(
            RouteRequest(from_id, to_id, edge_type, MARRIAGE, source, target, person_node_id(from_id), person_node_id(to_id))
        )

    def top_link(from_id: int, to_id: int):
        a, b = nodes[from_id].bounds, nodes[to_id].bounds
        requests.append(
            RouteRequest(
                from_id,
                to_id,
                "sibling",
                MARRIAGE,
                RoutePoint(a.center_x, a.y),
                RoutePoint(b.center_x, b.y),
                person_node_id(from_id),
                person_node_id(to_id),
            )
        )

    def lineage_link(parent_id: int, child_id: int):
        a, b = nodes[parent_id].bounds, nodes[child_id].bounds
        requests.append(
            RouteRequest(
                parent_id,
                child_id,
                "parent-child",
                CHILD,
                RoutePoint(a.center_x, a.bottom),
                RoutePoint(b.center_x, b.y),
                person_node_id(parent_id),
                person_node_id(child_id),
            )
        )

    gen0 = members.get(0, [])
    for rel in gen0:
        if rel.category == "spouse":
            side_link(root_id, rel.to_id, "spouse")
    for rel in gen0:
        if rel.category == "siblings":
            top_link(root_id, rel.to_id)

    parents = [r.to_id for r in members.get(-1, [])]
    for pid in parents:
        lineage_link(pid, root_id)
    if parents:
        for rel in members.get(-2, []):
            via = rel.from_id if rel.from_id in parents else parents[0]
            lineage_link(rel.to_id, via)

    children = [r.to_id for r in members.get(1, [])]
    for cid in children:
        lineage_link(root_id, cid)
    if children:
        for rel in members.get(2, []):
            via = rel.from_id if rel.from_id in children else children[0]
            lineage_link(via, rel.to_id)

    return requests
