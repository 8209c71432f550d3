"""Layout pipeline: placement strategy, routing, crossing markers and bounds."""

import hashlib
import json
import logging
from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from typing import Protocol

from bounds import normalize_bounds
from bridges import detect_crossings
from config import EPSILON, PAIR_NODE_WIDTH, PLACEMENT_HIERARCHICAL, PLACEMENT_ROWS, LayoutConfig
from errors import PlacementError
from generations import OVERFLOW, assign_generation, group_by_generation
from graph import build_graph, build_union_layout_graph, classify_relationships, person_node_id
from hierarchy import (
    GraphvizRankComputer,
    RankComputer,
    grid_ranks,
    grid_route_requests,
    place_union_graph,
    union_route_requests,
)
from models import (
    JunctionNode,
    LayoutEdge,
    LayoutNode,
    NodeBounds,
    OverflowGroup,
    RelationshipEdge,
    TreeInput,
    TreeLayout,
)
from obstacles import ObstacleIndex
from routing import RouteRequest, normalize_route, route_edges
from row_layout import layout_rows
from validation import validate_tree

logger = logging.getLogger(__name__)


@dataclass
class Placement:
    """Positioned nodes plus the connectors still to be routed."""

    nodes: list[LayoutNode] = field(default_factory=list)
    junction_nodes: list[JunctionNode] = field(default_factory=list)
    requests: list[RouteRequest] = field(default_factory=list)
    overflow: list[OverflowGroup] = field(default_factory=list)
    normalize_routes: bool = False


class PlacementStrategy(Protocol):
    def place(self, tree: TreeInput, relationships: list[RelationshipEdge], config: LayoutConfig) -> Placement:
        ...


class RowPlacementStrategy:
    """Built-in generation rows around the root."""

    def place(self, tree: TreeInput, relationships: list[RelationshipEdge], config: LayoutConfig) -> Placement:
        rows = layout_rows(tree.root_id, {p.id for p in tree.persons}, relationships, config)
        return Placement(nodes=rows.nodes, requests=rows.requests, overflow=rows.overflow)


class HierarchicalPlacementStrategy:
    """Union-node graph placed by an external rank computer (Graphviz by default)."""

    def __init__(self, rank_computer: RankComputer | None = None):
        self.rank_computer = rank_computer

    def place(self, tree: TreeInput, relationships: list[RelationshipEdge], config: LayoutConfig) -> Placement:
        graph = build_union_layout_graph(tree.persons, tree.family_units)
        rank_computer = self.rank_computer or GraphvizRankComputer(config.graphviz_prog)

        try:
            bounds = place_union_graph(graph, rank_computer, config.couple_gap, config.h_gap)
            requests = union_route_requests(graph, bounds)
        except PlacementError as exc:
            logger.warning("Hierarchical placement failed, using grid layout: %s", exc)
            bounds = grid_ranks(graph)
            requests = grid_route_requests(graph, bounds)

        categories = {r.to_id: r for r in relationships}
        root_key = person_node_id(tree.root_id)
        person_rows = sorted({round(b.y, 2) for n, b in bounds.items() if n.startswith("person_")})
        root_row = person_rows.index(round(bounds[root_key].y, 2)) if root_key in bounds else 0

        couples = _couple_partners(graph, bounds, config.couple_gap)
        nodes = []
        junctions = []
        for node_id, b in sorted(bounds.items(), key=lambda item: (item[1].y, item[1].x, item[0])):
            data = graph.nodes[node_id]
            if data.get("node_type") != "person":
                junctions.append(
                    JunctionNode(node_id, data["family_unit_id"], data["node_type"], b.x, b.y, b.width, b.height)
                )
                continue

            pid = data["person_id"]
            rel = categories.get(pid)
            generation = assign_generation(rel.category) if rel else OVERFLOW
            if pid == tree.root_id:
                generation = 0
            elif generation == OVERFLOW:
                generation = person_rows.index(round(b.y, 2)) - root_row

            nodes.append(
                LayoutNode(
                    person_id=pid,
                    x=b.x,
                    y=b.y,
                    width=b.width,
                    height=b.height,
                    generation=generation,
                    is_root=pid == tree.root_id,
                    couple_with=couples.get(pid),
                    label=rel.label if rel else None,
                )
            )

        placed = {n.person_id for n in nodes}
        overflow = _unplaced_overflow(relationships, placed)
        return Placement(
            nodes=nodes,
            junction_nodes=junctions,
            requests=requests,
            overflow=overflow,
            normalize_routes=True,
        )


def _couple_partners(graph, bounds: dict[str, NodeBounds], couple_gap: float) -> dict[int, int]:
    """
    Mutual couple links between adjacent partners on one row.

    Each person picks the partner of their lowest-numbered unit whose two
    partners were both placed on the same row. A link is kept only when the
    partner picked them back and the two cards sit no further apart than the
    pair node plus twice the couple gap.
    """
    max_gap = PAIR_NODE_WIDTH + 2 * couple_gap + EPSILON
    choice: dict[str, str] = {}
    for node_id in bounds:
        if graph.nodes[node_id].get("node_type") != "person":
            continue
        pairs = [v for v in graph.successors(node_id) if graph.nodes[v].get("node_type") == "pair"]
        for pair_id in sorted(pairs, key=lambda v: graph.nodes[v]["family_unit_id"]):
            partners = [p for p in graph.predecessors(pair_id) if p in bounds]
            if len(partners) != 2:
                continue
            other = partners[1] if partners[0] == node_id else partners[0]
            if abs(bounds[other].y - bounds[node_id].y) < EPSILON:
                choice[node_id] = other
                break

    couples = {}
    for node_id, other in choice.items():
        if choice.get(other) != node_id:
            continue
        a, b = bounds[node_id], bounds[other]
        if max(b.x - a.right, a.x - b.right) <= max_gap:
            couples[graph.nodes[node_id]["person_id"]] = graph.nodes[other]["person_id"]
    return couples


def _unplaced_overflow(relationships: list[RelationshipEdge], placed: set[int]) -> list[OverflowGroup]:
    # Everyone in the union graph already has a node; overflow keeps only the rest
    _, overflow = group_by_generation([r for r in relationships if r.to_id not in placed])
    return overflow


STRATEGIES = {
    PLACEMENT_ROWS: RowPlacementStrategy,
    PLACEMENT_HIERARCHICAL: HierarchicalPlacementStrategy,
}


def compute_layout(
    tree: TreeInput,
    config: LayoutConfig | None = None,
    strategy: PlacementStrategy | None = None,
) -> TreeLayout:
    """
    Compute node positions and routed connectors for a family tree.

    The result depends only on the content of `tree` and `config`. An unknown
    root or an empty person list yields an empty layout rather than an error.

    Args:
        tree: Persons, family units, optional pre-classified relationships and the root
        config: Layout parameters; `config.placement` selects the strategy
        strategy: Explicit placement strategy, overriding `config.placement`

    Returns:
        A TreeLayout translated into non-negative coordinates
    """
    config = config or LayoutConfig()
    person_ids = {p.id for p in tree.persons}
    if tree.root_id not in person_ids:
        logger.debug("Root %s is not a known person; returning empty layout", tree.root_id)
        return TreeLayout()

    for warning in validate_tree(tree.persons, tree.family_units):
        logger.warning("%s", warning)

    relationships = tree.relationships
    if relationships is None:
        relationships = classify_relationships(build_graph(tree.persons, tree.family_units), tree.root_id)

    if strategy is None:
        if config.placement not in STRATEGIES:
            raise ValueError(f"Unknown placement strategy: {config.placement}")
        strategy = STRATEGIES[config.placement]()

    placement = strategy.place(tree, relationships, config)
    layout = route_placement(placement, config)
    return normalize_bounds(layout, config.padding)


def route_placement(placement: Placement, config: LayoutConfig) -> TreeLayout:
    """Build the obstacle index for a placement and route all of its connectors."""
    owner_bounds: dict[str, NodeBounds] = {person_node_id(n.person_id): n.bounds for n in placement.nodes}
    owner_bounds.update({j.id: j.bounds for j in placement.junction_nodes})
    index = ObstacleIndex(
        owner_bounds,
        person_margin=config.person_margin,
        pseudo_margin=config.pair_bus_margin,
        channel_gap=config.channel_gap,
    )

    routes = route_edges(placement.requests, index)
    if placement.normalize_routes:
        routes = [normalize_route(points) for points in routes]

    bridges, junctions = detect_crossings(placement.requests, routes)

    edges = [
        LayoutEdge(
            from_id=request.from_id,
            to_id=request.to_id,
            type=request.type,
            kind=request.kind,
            route_points=tuple(points),
            crossing_bridges=tuple(bridges[i]),
            junctions=tuple(junctions[i]),
            family_unit_id=request.family_unit_id,
        )
        for i, (request, points) in enumerate(zip(placement.requests, routes))
    ]

    return TreeLayout(
        nodes=placement.nodes,
        edges=edges,
        junction_nodes=placement.junction_nodes,
        overflow=placement.overflow,
    )


# ============================================================================
# Content-keyed memo
# ============================================================================


def content_key(tree: TreeInput, config: LayoutConfig) -> str:
    """SHA-256 of the canonical JSON form of (tree, config)."""
    payload = json.dumps(
        {"tree": asdict(tree), "config": asdict(config)},
        sort_keys=True,
        default=str,
        separators=(",", ":"),
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class LayoutCache:
    """
    Bounded LRU memo of computed layouts keyed by input content, not identity.

    Two structurally equal inputs built independently share one entry.
    """

    def __init__(self, max_size: int = 32):
        self.max_size = max_size
        self._entries: OrderedDict[str, TreeLayout] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get_layout(self, tree: TreeInput, config: LayoutConfig | None = None) -> TreeLayout:
        config = config or LayoutConfig()
        key = content_key(tree, config)
        if key in self._entries:
            self.hits += 1
            self._entries.move_to_end(key)
            return self._entries[key]

        self.misses += 1
        layout = compute_layout(tree, config)
        self._entries[key] = layout
        if len(self._entries) > self.max_size:
            self._entries.popitem(last=False)
        return layout
