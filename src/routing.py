"""Obstacle-aware orthogonal routing of family connectors."""

import logging
from dataclasses import dataclass

from config import EPSILON
from models import RoutePoint
from obstacles import ObstacleIndex

logger = logging.getLogger(__name__)

MARRIAGE = "marriage"
TRUNK = "trunk"
CHILD = "child"


@dataclass(frozen=True)
class RouteRequest:
    """A connector to route: anchor points plus the obstacle owners to ignore."""

    from_id: int | str
    to_id: int | str
    type: str  # parent-child, spouse, sibling
    kind: str  # marriage, trunk, child
    source: RoutePoint
    target: RoutePoint
    source_owner: str
    target_owner: str
    family_unit_id: int | None = None


def route_edge(request: RouteRequest, index: ObstacleIndex) -> list[RoutePoint]:
    """Route one connector; unknown kinds get a straight segment."""
    exclude = frozenset({request.source_owner, request.target_owner})
    if request.kind == MARRIAGE:
        return route_marriage_edge(request.source, request.target, index, exclude)
    if request.kind == TRUNK:
        return route_trunk_edge(request.source, request.target, index, exclude)
    if request.kind == CHILD:
        return route_child_edge(request.source, request.target, index, exclude)
    return [request.source, request.target]


def route_edges(requests: list[RouteRequest], index: ObstacleIndex) -> list[list[RoutePoint]]:
    """Route a batch of connectors against one obstacle index, in request order."""
    return [route_edge(r, index) for r in requests]


def _blocked(index: ObstacleIndex, a: RoutePoint, b: RoutePoint, exclude) -> bool:
    return index.segment_obstacle(a.x, a.y, b.x, b.y, exclude) is not None


def route_marriage_edge(
    source: RoutePoint, target: RoutePoint, index: ObstacleIndex, exclude=frozenset()
) -> list[RoutePoint]:
    """
    Route a spousal connector.

    Preferred shape is the corner path source -> (source.x, target.y) -> target.
    When blocked, the connector leaves through a free horizontal channel near
    the vertical midpoint and, if one exists, drops to the target through a
    free vertical channel, or straight down over the target when that channel
    cannot reach it. Without any horizontal channel the corner path is kept.
    """
    corner = RoutePoint(source.x, target.y)
    if not _blocked(index, source, corner, exclude) and not _blocked(index, corner, target, exclude):
        return [source, corner, target]

    mid_y = (source.y + target.y) / 2
    channel_y = index.find_horizontal_channel(source.x, target.x, mid_y, exclude)
    if channel_y is None:
        logger.debug("No horizontal channel for marriage edge at %s; using corner path", source)
        return [source, corner, target]

    detour_x = index.find_vertical_channel(source.y, target.y, (source.x + target.x) / 2, exclude)
    if detour_x is not None:
        detour = [
            source,
            RoutePoint(source.x, channel_y),
            RoutePoint(detour_x, channel_y),
            RoutePoint(detour_x, target.y),
            target,
        ]
        # The channel was only checked between source.x and target.x
        if not _blocked(index, detour[1], detour[2], exclude) and not _blocked(index, detour[3], target, exclude):
            return detour
        logger.debug("Vertical channel at x=%s is cut off from the target; dropping straight down", detour_x)

    return [
        source,
        RoutePoint(source.x, channel_y),
        RoutePoint(target.x, channel_y),
        target,
    ]


def route_trunk_edge(
    source: RoutePoint, target: RoutePoint, index: ObstacleIndex, exclude=frozenset()
) -> list[RoutePoint]:
    """
    Route a vertical lineage bus.

    Aligned endpoints get a straight line, or a Z detour through the nearest
    free vertical channel when something sits in between. Otherwise the bus is
    a Z through the vertical midline, moved to a free horizontal channel when
    the midline is blocked.
    """
    if abs(source.x - target.x) < EPSILON:
        if not _blocked(index, source, target, exclude):
            return [source, target]

        detour_x = index.find_vertical_channel(source.y, target.y, source.x, exclude)
        if detour_x is not None:
            mid_y = (source.y + target.y) / 2
            return [
                source,
                RoutePoint(source.x, mid_y),
                RoutePoint(detour_x, mid_y),
                RoutePoint(detour_x, target.y),
                target,
            ]
        logger.debug("No vertical channel for trunk edge at %s; using straight line", source)
        return [source, target]

    mid_y = (source.y + target.y) / 2
    midline_blocked = index.segment_obstacle(source.x, mid_y, target.x, mid_y, exclude) is not None
    if midline_blocked:
        channel_y = index.find_horizontal_channel(source.x, target.x, mid_y, exclude)
        if channel_y is not None:
            mid_y = channel_y
        else:
            logger.debug("No horizontal channel for trunk edge at %s; using midline", source)

    return [
        source,
        RoutePoint(source.x, mid_y),
        RoutePoint(target.x, mid_y),
        target,
    ]


def route_child_edge(
    source: RoutePoint, target: RoutePoint, index: ObstacleIndex, exclude=frozenset()
) -> list[RoutePoint]:
    """
    Route a parent-to-child connector.

    Aligned and unobstructed endpoints get a straight line. Otherwise the
    preferred shape is an L bending at (target.x, source.y); when blocked the
    horizontal run moves to a free channel near the vertical midpoint, and the
    plain L is the last resort.
    """
    if abs(source.x - target.x) < EPSILON and not _blocked(index, source, target, exclude):
        return [source, target]

    bend = RoutePoint(target.x, source.y)
    if not _blocked(index, source, bend, exclude) and not _blocked(index, bend, target, exclude):
        return [source, bend, target]

    mid_y = (source.y + target.y) / 2
    channel_y = index.find_horizontal_channel(source.x, target.x, mid_y, exclude)
    if channel_y is not None:
        return [
            source,
            RoutePoint(source.x, channel_y),
            RoutePoint(target.x, channel_y),
            target,
        ]

    logger.debug("No horizontal channel for child edge at %s; using L path", source)
    return [source, bend, target]


def normalize_route(points: list[RoutePoint]) -> list[RoutePoint]:
    """
    Drop repeated points and collinear midpoints.

    Interior points are rounded to two decimals; the two endpoints are kept
    exactly as given.
    """
    if len(points) < 2:
        return list(points)

    interior = [RoutePoint(round2(p.x), round2(p.y)) for p in points[1:-1]]
    compact: list[RoutePoint] = [points[0]]
    for p in interior:
        if not _same_point(compact[-1], p):
            compact.append(p)
    if len(compact) > 1 and _same_point(compact[-1], points[-1]):
        compact[-1] = points[-1]
    else:
        compact.append(points[-1])

    changed = True
    while changed and len(compact) >= 3:
        changed = False
        for i in range(1, len(compact) - 1):
            a, b, c = compact[i - 1], compact[i], compact[i + 1]
            vertical = abs(a.x - b.x) < EPSILON and abs(b.x - c.x) < EPSILON
            horizontal = abs(a.y - b.y) < EPSILON and abs(b.y - c.y) < EPSILON
            if vertical or horizontal:
                del compact[i]
                changed = True
                break

    return compact


def round2(value: float) -> float:
    return round(value * 100) / 100


def _same_point(a: RoutePoint, b: RoutePoint) -> bool:
    return abs(a.x - b.x) < EPSILON and abs(a.y - b.y) < EPSILON
