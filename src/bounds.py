"""Bounding box and translation of a layout into non-negative coordinates."""

from dataclasses import replace

from config import PADDING
from models import BridgePoint, LayoutEdge, RoutePoint, TreeLayout


def normalize_bounds(layout: TreeLayout, padding: float = PADDING) -> TreeLayout:
    """
    Translate a layout so its top-left corner sits at (padding, padding).

    Node and junction rectangles define the bounding box; edge route points
    and markers move by the same offset. Width and height are the box extent
    plus padding on both sides. An empty layout comes back with zero size.
    """
    rects = [n.bounds for n in layout.nodes] + [j.bounds for j in layout.junction_nodes]
    if not rects:
        return replace(layout, width=0.0, height=0.0)

    min_x = min(b.x for b in rects)
    min_y = min(b.y for b in rects)
    max_x = max(b.right for b in rects)
    max_y = max(b.bottom for b in rects)

    dx = padding - min_x
    dy = padding - min_y

    return TreeLayout(
        nodes=[replace(n, x=n.x + dx, y=n.y + dy) for n in layout.nodes],
        edges=[_shift_edge(e, dx, dy) for e in layout.edges],
        junction_nodes=[replace(j, x=j.x + dx, y=j.y + dy) for j in layout.junction_nodes],
        width=max_x - min_x + padding * 2,
        height=max_y - min_y + padding * 2,
        overflow=layout.overflow,
    )


def _shift_edge(edge: LayoutEdge, dx: float, dy: float) -> LayoutEdge:
    return replace(
        edge,
        route_points=tuple(RoutePoint(p.x + dx, p.y + dy) for p in edge.route_points),
        crossing_bridges=tuple(BridgePoint(b.segment_index, b.x + dx, b.y + dy) for b in edge.crossing_bridges),
        junctions=tuple(BridgePoint(j.segment_index, j.x + dx, j.y + dy) for j in edge.junctions),
    )
