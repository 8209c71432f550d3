"""Hierarchical placement through Graphviz, plus the post-placement passes.

Graphviz only ranks and places the union-node graph. Everything afterwards
(partner adjacency, sibling alignment, bus centring, routing) is done here on
immutable coordinate snapshots: every pass returns a new dict and leaves its
input untouched.
"""

import logging
from dataclasses import replace
from typing import Protocol

import networkx as nx
import pydot

from config import (
    CHILD_LAYER_TOLERANCE,
    CROSSING_SWEEP_MAX_PASSES,
    EPSILON,
    GRID_COLUMNS,
    GRID_H_GAP,
    GRID_V_GAP,
    PAIR_NODE_WIDTH,
    PERSON_NODE_HEIGHT,
    PERSON_NODE_WIDTH,
)
from errors import PlacementError
from graph import person_node_id
from models import NodeBounds, RoutePoint
from routing import CHILD, MARRIAGE, TRUNK, RouteRequest

logger = logging.getLogger(__name__)

POINTS_PER_INCH = 72.0

Snapshot = dict[str, NodeBounds]


class RankComputer(Protocol):
    def compute_ranks(self, graph: nx.DiGraph) -> Snapshot:
        """Return top-left bounds for every node of the union-node graph."""
        ...


class GraphvizRankComputer:
    """Rank and place a union-node graph with Graphviz through pydot."""

    def __init__(self, prog: str = "dot"):
        self.prog = prog

    def to_dot(self, graph: nx.DiGraph) -> pydot.Dot:
        """
        Translate the union-node graph into a pydot graph.

        - Top-to-bottom ranks (ancestors at top)
        - Partners share a rank=same subgraph, ordered by an invisible edge
        - Pair and bus nodes are small fixed-size points
        """
        P = pydot.Dot(graph_type="digraph")
        P.set("rankdir", "TB")
        P.set("nodesep", "0.4")
        P.set("ranksep", "0.6")

        couples: list[tuple] = []

        # Add nodes
        for node, data in graph.nodes(data=True):
            node_type = data.get("node_type", "person")
            P.add_node(
                pydot.Node(
                    str(node),
                    shape="box" if node_type == "person" else "point",
                    width=f"{data['width'] / POINTS_PER_INCH:.4f}",
                    height=f"{data['height'] / POINTS_PER_INCH:.4f}",
                    fixedsize="true",
                    label="",
                )
            )
            partners = data.get("partners", ())
            if node_type == "pair" and len(partners) == 2:
                couples.append(tuple(person_node_id(pid) for pid in partners))

        # Add edges
        for u, v, data in graph.edges(data=True):
            P.add_edge(pydot.Edge(str(u), str(v), dir="none"))

        # Keep partners on one rank, left to right in partner order
        for i, (a, b) in enumerate(couples):
            sg = pydot.Subgraph(f"couple_{i}", rank="same")
            sg.add_node(pydot.Node(a))
            sg.add_node(pydot.Node(b))
            sg.add_edge(pydot.Edge(a, b, style="invis"))
            P.add_subgraph(sg)

        return P

    def compute_ranks(self, graph: nx.DiGraph) -> Snapshot:
        P = self.to_dot(graph)
        try:
            output = P.create(prog=self.prog, format="plain")
        except (OSError, AssertionError) as exc:
            raise PlacementError(f"Graphviz '{self.prog}' failed: {exc}") from exc

        if isinstance(output, bytes):
            output = output.decode("utf-8")
        return parse_plain(output, graph)


def parse_plain(output: str, graph: nx.DiGraph) -> Snapshot:
    """
    Parse Graphviz `plain` output into top-left bounds in points.

    Graphviz reports node centres in inches with y growing upwards; the
    returned coordinates grow downwards. Sizes come from the graph's own
    width/height attributes.
    """
    graph_height = None
    centers: dict[str, tuple[float, float]] = {}

    for line in output.splitlines():
        parts = line.split()
        if not parts:
            continue
        try:
            if parts[0] == "graph":
                graph_height = float(parts[3])
            elif parts[0] == "node":
                centers[parts[1].strip('"')] = (float(parts[2]), float(parts[3]))
        except (IndexError, ValueError) as exc:
            raise PlacementError(f"Unparsable Graphviz output line: {line!r}") from exc

    if graph_height is None:
        raise PlacementError("Graphviz output has no graph header")

    bounds: Snapshot = {}
    for node, data in graph.nodes(data=True):
        if str(node) not in centers:
            raise PlacementError(f"Graphviz did not place node {node}")
        cx, cy = centers[str(node)]
        w, h = data["width"], data["height"]
        bounds[str(node)] = NodeBounds(
            x=cx * POINTS_PER_INCH - w / 2,
            y=(graph_height - cy) * POINTS_PER_INCH - h / 2,
            width=w,
            height=h,
        )
    return bounds


def grid_ranks(graph: nx.DiGraph) -> Snapshot:
    """Last-resort placement: person nodes in a fixed grid, pseudo nodes dropped."""
    people = sorted(
        (data["person_id"], node) for node, data in graph.nodes(data=True) if data.get("node_type") == "person"
    )
    bounds: Snapshot = {}
    for i, (_, node) in enumerate(people):
        col, row = i % GRID_COLUMNS, i // GRID_COLUMNS
        bounds[node] = NodeBounds(
            x=col * (PERSON_NODE_WIDTH + GRID_H_GAP),
            y=row * (PERSON_NODE_HEIGHT + GRID_V_GAP),
            width=PERSON_NODE_WIDTH,
            height=PERSON_NODE_HEIGHT,
        )
    return bounds


# ============================================================================
# Post-placement passes
# ============================================================================


def _nodes_of_type(graph: nx.DiGraph, node_type: str) -> list[str]:
    return sorted(n for n, d in graph.nodes(data=True) if d.get("node_type") == node_type)


def _partners(graph: nx.DiGraph, pair_id: str, bounds: Snapshot) -> list[str]:
    return [u for u in graph.predecessors(pair_id) if u in bounds]


def _children(graph: nx.DiGraph, bus_id: str, bounds: Snapshot) -> list[str]:
    return [v for v in graph.successors(bus_id) if v in bounds]


def align_siblings(bounds: Snapshot, graph: nx.DiGraph) -> Snapshot:
    """Children of one family unit share the highest of their y values."""
    result = dict(bounds)
    for bus_id in _nodes_of_type(graph, "bus"):
        children = _children(graph, bus_id, result)
        if len(children) < 2:
            continue
        top = min(result[c].y for c in children)
        for c in children:
            result[c] = replace(result[c], y=top)
    return result


def align_partners(bounds: Snapshot, graph: nx.DiGraph, couple_gap: float) -> Snapshot:
    """
    Put the two partners of each unit side by side around their midpoint.

    Partners move to the lower of their y values and are separated by the pair
    node width plus twice the couple gap; the pair node is centred between them.
    """
    result = dict(bounds)
    gap = PAIR_NODE_WIDTH + 2 * couple_gap

    for pair_id in _nodes_of_type(graph, "pair"):
        partners = _partners(graph, pair_id, result)
        if len(partners) != 2 or pair_id not in result:
            continue

        left, right = sorted(partners, key=lambda p: (result[p].center_x, p))
        lb, rb = result[left], result[right]
        mid = (min(lb.x, rb.x) + max(lb.right, rb.right)) / 2
        y = max(lb.y, rb.y)
        start = mid - (lb.width + gap + rb.width) / 2

        result[left] = replace(lb, x=start, y=y)
        result[right] = replace(rb, x=start + lb.width + gap, y=y)
        result[pair_id] = replace(result[pair_id], x=mid - result[pair_id].width / 2)

    return result


def separate_rows(bounds: Snapshot, graph: nx.DiGraph, gap: float) -> Snapshot:
    """
    Sweep each row of person nodes left to right so neighbours keep `gap` between them.

    Partners placed on the same row move together as one block, so the
    spacing set by `align_partners` survives the sweep. Members of a block
    are still kept `gap` apart from each other.
    """
    result = dict(bounds)
    people = [n for n in _nodes_of_type(graph, "person") if n in result]

    rows: dict[float, list[str]] = {}
    for node in people:
        key = next((y for y in rows if abs(y - result[node].y) < EPSILON), result[node].y)
        rows.setdefault(key, []).append(node)

    for row in rows.values():
        blocks = _couple_blocks(graph, row, result)
        blocks.sort(key=lambda block: (result[block[0]].x, block[0]))

        right_edge = None
        for block in blocks:
            left = result[block[0]].x
            if right_edge is not None and left < right_edge + gap:
                shift = right_edge + gap - left
                for n in block:
                    result[n] = replace(result[n], x=result[n].x + shift)
            # A person with two partners makes a block of three
            for i in range(1, len(block)):
                push = result[block[i - 1]].right + gap - result[block[i]].x
                if push > 0:
                    for n in block[i:]:
                        result[n] = replace(result[n], x=result[n].x + push)
            right_edge = max(result[n].right for n in block)
    return result


def _couple_blocks(graph: nx.DiGraph, row: list[str], bounds: Snapshot) -> list[list[str]]:
    # Row members linked through a shared pair node, each block ordered left to right
    links = nx.Graph()
    links.add_nodes_from(row)
    for pair_id in _nodes_of_type(graph, "pair"):
        partners = [p for p in graph.predecessors(pair_id) if p in links]
        if len(partners) == 2:
            links.add_edge(*partners)
    return [sorted(c, key=lambda n: (bounds[n].x, n)) for c in nx.connected_components(links)]


def center_junctions(bounds: Snapshot, graph: nx.DiGraph) -> Snapshot:
    """Centre each pair node between its partners and each bus node under its pair node."""
    result = dict(bounds)

    for pair_id in _nodes_of_type(graph, "pair"):
        if pair_id not in result:
            continue
        partners = _partners(graph, pair_id, result)
        if len(partners) == 2:
            a, b = result[partners[0]], result[partners[1]]
            mid = (min(a.x, b.x) + max(a.right, b.right)) / 2
            result[pair_id] = replace(result[pair_id], x=mid - result[pair_id].width / 2)

        for bus_id in graph.successors(pair_id):
            if bus_id in result and graph.nodes[bus_id].get("node_type") == "bus":
                bus = result[bus_id]
                result[bus_id] = replace(bus, x=result[pair_id].center_x - bus.width / 2)

    return result


def reduce_child_crossings(bounds: Snapshot, graph: nx.DiGraph) -> Snapshot:
    """
    Reorder children within their rows to reduce child-connector crossings.

    Children are sorted by the barycenter of the bus nodes they hang from,
    then improved by adjacent swaps. Children only trade slots among
    themselves, so row spacing is preserved.
    """
    result = dict(bounds)
    source_xs: dict[str, list[float]] = {}
    for bus_id in _nodes_of_type(graph, "bus"):
        if bus_id not in result:
            continue
        for child in _children(graph, bus_id, result):
            source_xs.setdefault(child, []).append(result[bus_id].center_x)

    if len(source_xs) < 2:
        return result

    for layer in _group_by_layer(list(source_xs), result):
        if len(layer) < 2:
            continue
        slots = sorted(result[n].x for n in layer)

        def barycenter(n: str) -> float:
            xs = source_xs[n]
            return sum(xs) / len(xs)

        order = sorted(layer, key=lambda n: (round(barycenter(n), 2), result[n].center_x, n))
        crossings = _count_crossings(order, source_xs)

        for _ in range(CROSSING_SWEEP_MAX_PASSES):
            changed = False
            for i in range(len(order) - 1):
                swapped = order[:i] + [order[i + 1], order[i]] + order[i + 2 :]
                swapped_crossings = _count_crossings(swapped, source_xs)
                if swapped_crossings < crossings:
                    order, crossings, changed = swapped, swapped_crossings, True
            if not changed:
                break

        for node, x in zip(order, slots):
            result[node] = replace(result[node], x=x)

    return result


def _group_by_layer(nodes: list[str], bounds: Snapshot) -> list[list[str]]:
    ordered = sorted(nodes, key=lambda n: (bounds[n].y, bounds[n].center_x, n))
    layers: list[list[str]] = []
    anchor_y = None
    for n in ordered:
        y = bounds[n].y
        if anchor_y is not None and abs(y - anchor_y) <= CHILD_LAYER_TOLERANCE:
            layers[-1].append(n)
            anchor_y = (anchor_y * (len(layers[-1]) - 1) + y) / len(layers[-1])
            continue
        layers.append([n])
        anchor_y = y
    return layers


def _count_crossings(order: list[str], source_xs: dict[str, list[float]]) -> int:
    links = [(x, rank) for rank, n in enumerate(order) for x in source_xs.get(n, [])]
    crossings = 0
    for i, (left_x, left_rank) in enumerate(links):
        for right_x, right_rank in links[i + 1 :]:
            if left_rank == right_rank or abs(left_x - right_x) <= EPSILON:
                continue
            if (left_x - right_x) * (left_rank - right_rank) < 0:
                crossings += 1
    return crossings


def place_union_graph(
    graph: nx.DiGraph, rank_computer: RankComputer, couple_gap: float, h_gap: float
) -> Snapshot:
    """Run the external placement and every post-placement pass, in order."""
    initial = rank_computer.compute_ranks(graph)
    snapshot = align_siblings(initial, graph)
    snapshot = reduce_child_crossings(snapshot, graph)
    snapshot = align_partners(snapshot, graph, couple_gap)
    snapshot = separate_rows(snapshot, graph, h_gap)
    return center_junctions(snapshot, graph)


# ============================================================================
# Connector anchors
# ============================================================================


def union_route_requests(graph: nx.DiGraph, bounds: Snapshot) -> list[RouteRequest]:
    """
    Anchor every union-graph edge whose ends were placed.

    - marriage: person bottom-centre -> pair left/right middle (side facing the person)
    - trunk: pair bottom-centre -> bus top-centre
    - child: bus left/right middle (side facing the child) -> child top-centre

    Requests come out ordered trunk, marriage, child, then by source y, source
    x and edge id.
    """
    requests = []
    for u, v, data in graph.edges(data=True):
        if u not in bounds or v not in bounds:
            continue
        a, b = bounds[u], bounds[v]
        kind = data["edge_kind"]
        unit_id = data.get("family_unit_id")

        if kind == MARRIAGE:
            source = RoutePoint(a.center_x, a.bottom)
            target = RoutePoint(b.x, b.center_y) if a.center_x <= b.center_x else RoutePoint(b.right, b.center_y)
            edge_type = "spouse"
        elif kind == TRUNK:
            source = RoutePoint(a.center_x, a.bottom)
            target = RoutePoint(b.center_x, b.y)
            edge_type = "parent-child"
        else:
            source = RoutePoint(a.x, a.center_y) if b.center_x <= a.center_x else RoutePoint(a.right, a.center_y)
            target = RoutePoint(b.center_x, b.y)
            edge_type = "parent-child"

        requests.append(
            RouteRequest(
                from_id=_public_id(graph, u),
                to_id=_public_id(graph, v),
                type=edge_type,
                kind=kind,
                source=source,
                target=target,
                source_owner=u,
                target_owner=v,
                family_unit_id=unit_id,
            )
        )

    kind_order = {TRUNK: 0, MARRIAGE: 1, CHILD: 2}
    return sorted(
        requests,
        key=lambda r: (
            kind_order.get(r.kind, 99),
            round(bounds[r.source_owner].y, 2),
            round(bounds[r.source_owner].center_x, 2),
            f"{r.source_owner}->{r.target_owner}",
        ),
    )


def grid_route_requests(graph: nx.DiGraph, bounds: Snapshot) -> list[RouteRequest]:
    """Partner-to-child connectors for the grid fallback, which has no pseudo nodes."""
    requests = []
    for pair_id in _nodes_of_type(graph, "pair"):
        unit_id = graph.nodes[pair_id]["family_unit_id"]
        bus_ids = [b for b in graph.successors(pair_id) if graph.nodes[b].get("node_type") == "bus"]
        children = [c for b in bus_ids for c in graph.successors(b)]
        for partner in graph.predecessors(pair_id):
            for child in children:
                if partner not in bounds or child not in bounds:
                    continue
                a, b = bounds[partner], bounds[child]
                requests.append(
                    RouteRequest(
                        from_id=_public_id(graph, partner),
                        to_id=_public_id(graph, child),
                        type="parent-child",
                        kind=CHILD,
                        source=RoutePoint(a.center_x, a.bottom),
                        target=RoutePoint(b.center_x, b.y),
                        source_owner=partner,
                        target_owner=child,
                        family_unit_id=unit_id,
                    )
                )
    return requests


def _public_id(graph: nx.DiGraph, node: str) -> int | str:
    data = graph.nodes[node]
    if data.get("node_type") == "person":
        return data["person_id"]
    return node
