"""Bridge and junction markers where routed connectors meet."""

from dataclasses import dataclass

from config import BRIDGE_MIN_SPACING, BRIDGE_RADIUS, EPSILON, JUNCTION_MIN_SPACING
from models import BridgePoint, RoutePoint
from routing import RouteRequest, round2


@dataclass(frozen=True)
class Segment:
    edge_index: int
    segment_index: int
    a: RoutePoint
    b: RoutePoint
    orientation: str  # "H" or "V"


def collect_segments(edge_index: int, points: list[RoutePoint]) -> list[Segment]:
    """Axis-aligned, non-degenerate segments of a route."""
    segments = []
    for i, (a, b) in enumerate(zip(points, points[1:])):
        if abs(a.x - b.x) < EPSILON and abs(a.y - b.y) < EPSILON:
            continue
        if abs(a.y - b.y) < EPSILON:
            segments.append(Segment(edge_index, i, a, b, "H"))
        elif abs(a.x - b.x) < EPSILON:
            segments.append(Segment(edge_index, i, a, b, "V"))
    return segments


def is_related(a: RouteRequest, b: RouteRequest) -> bool:
    """Connectors of the same family unit or sharing an endpoint meet on purpose."""
    if a.family_unit_id is not None and a.family_unit_id == b.family_unit_id:
        return True
    return bool({a.from_id, a.to_id} & {b.from_id, b.to_id})


def bridge_fits(segment: Segment, x: float, radius: float = BRIDGE_RADIUS) -> bool:
    """True when a bridge arc at x stays clear of both ends of a horizontal segment."""
    min_x = min(segment.a.x, segment.b.x)
    max_x = max(segment.a.x, segment.b.x)
    return x - radius > min_x + EPSILON and x + radius < max_x - EPSILON


def detect_crossings(
    requests: list[RouteRequest], routes: list[list[RoutePoint]]
) -> tuple[list[list[BridgePoint]], list[list[BridgePoint]]]:
    """
    Find crossings between routed connectors.

    Unrelated connectors that cross strictly inside both segments get a bridge
    on the horizontal segment, provided the arc fits between the segment's
    turning points. Related connectors touching in a T get a junction on the
    segment whose interior is touched.

    Args:
        requests: The routed connectors, in output order
        routes: Route points per connector, parallel to `requests`

    Returns:
        (bridges, junctions), one marker list per connector
    """
    bridges: list[list[BridgePoint]] = [[] for _ in requests]
    junctions: list[list[BridgePoint]] = [[] for _ in requests]
    segments = [collect_segments(i, points) for i, points in enumerate(routes)]

    for i in range(len(requests)):
        for j in range(i + 1, len(requests)):
            related = is_related(requests[i], requests[j])
            for seg_a in segments[i]:
                for seg_b in segments[j]:
                    if seg_a.orientation == seg_b.orientation:
                        continue
                    horizontal, vertical = (seg_a, seg_b) if seg_a.orientation == "H" else (seg_b, seg_a)
                    ix = vertical.a.x
                    iy = horizontal.a.y

                    min_hx, max_hx = sorted((horizontal.a.x, horizontal.b.x))
                    min_vy, max_vy = sorted((vertical.a.y, vertical.b.y))
                    if not (min_hx - EPSILON <= ix <= max_hx + EPSILON):
                        continue
                    if not (min_vy - EPSILON <= iy <= max_vy + EPSILON):
                        continue

                    h_interior = min_hx + EPSILON < ix < max_hx - EPSILON
                    v_interior = min_vy + EPSILON < iy < max_vy - EPSILON

                    if related:
                        if not h_interior and not v_interior:
                            continue
                        owner = horizontal if h_interior else vertical
                        _add_marker(junctions[owner.edge_index], owner.segment_index, ix, iy, JUNCTION_MIN_SPACING)
                        continue

                    if not h_interior or not v_interior:
                        continue
                    if not bridge_fits(horizontal, ix):
                        continue
                    _add_marker(bridges[horizontal.edge_index], horizontal.segment_index, ix, iy, BRIDGE_MIN_SPACING)

    return (
        [_sorted_along_route(m, routes[k]) for k, m in enumerate(bridges)],
        [_sorted_along_route(m, routes[k]) for k, m in enumerate(junctions)],
    )


def _add_marker(markers: list[BridgePoint], segment_index: int, x: float, y: float, min_spacing: float):
    too_close = any(
        m.segment_index == segment_index and abs(m.x - x) < min_spacing and abs(m.y - y) < min_spacing
        for m in markers
    )
    if not too_close:
        markers.append(BridgePoint(segment_index, round2(x), round2(y)))


def _sorted_along_route(markers: list[BridgePoint], points: list[RoutePoint]) -> list[BridgePoint]:
    def key(m: BridgePoint):
        a, b = points[m.segment_index], points[m.segment_index + 1]
        if abs(a.y - b.y) >= EPSILON:
            offset = m.y - a.y if b.y >= a.y else a.y - m.y
        else:
            offset = m.x - a.x if b.x >= a.x else a.x - m.x
        return (m.segment_index, offset)

    return sorted(markers, key=key)
