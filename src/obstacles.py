"""Obstacle rectangles and free routing channels between laid-out nodes."""

from config import (
    CHANNEL_GAP,
    CHANNEL_RANGE_PADDING,
    EPSILON,
    OUTER_CHANNEL_OFFSET,
    PAIR_BUS_MARGIN,
    PERSON_MARGIN,
)
from models import Channel, NodeBounds, ObstacleRect

HORIZONTAL = "horizontal"
VERTICAL = "vertical"


class ObstacleIndex:
    """
    Inflated node rectangles plus the horizontal and vertical channels between them.

    Person nodes are inflated by `person_margin`, pair/bus pseudo nodes (owner
    ids starting with "fu_") by the smaller `pseudo_margin`. An index is built
    from one coordinate snapshot and never changes afterwards.
    """

    def __init__(
        self,
        node_bounds: dict[str, NodeBounds],
        person_margin: float = PERSON_MARGIN,
        pseudo_margin: float = PAIR_BUS_MARGIN,
        channel_gap: float = CHANNEL_GAP,
    ):
        self.channel_gap = channel_gap
        self.obstacles: list[ObstacleRect] = []
        for owner_id, b in node_bounds.items():
            margin = pseudo_margin if owner_id.startswith("fu_") else person_margin
            self.obstacles.append(
                ObstacleRect(
                    owner_id=owner_id,
                    x=b.x - margin,
                    y=b.y - margin,
                    width=b.width + margin * 2,
                    height=b.height + margin * 2,
                )
            )
        self.horizontal_channels = self._horizontal_channels()
        self.vertical_channels = self._vertical_channels()

    def _horizontal_channels(self) -> list[Channel]:
        if not self.obstacles:
            return []

        ordered = sorted(self.obstacles, key=lambda o: (o.y, o.x, o.owner_id))
        min_x = min(o.x for o in self.obstacles) - CHANNEL_RANGE_PADDING
        max_x = max(o.x + o.width for o in self.obstacles) + CHANNEL_RANGE_PADDING
        channels = []

        for upper, lower in zip(ordered, ordered[1:]):
            bottom_of_upper = upper.y + upper.height
            top_of_lower = lower.y
            if top_of_lower - bottom_of_upper > self.channel_gap:
                channels.append(Channel(HORIZONTAL, (bottom_of_upper + top_of_lower) / 2, min_x, max_x))

        # One above the topmost and one below the bottommost obstacle
        channels.append(Channel(HORIZONTAL, ordered[0].y - OUTER_CHANNEL_OFFSET, min_x, max_x))
        last = ordered[-1]
        channels.append(Channel(HORIZONTAL, last.y + last.height + OUTER_CHANNEL_OFFSET, min_x, max_x))
        return channels

    def _vertical_channels(self) -> list[Channel]:
        if not self.obstacles:
            return []

        ordered = sorted(self.obstacles, key=lambda o: (o.x, o.y, o.owner_id))
        min_y = min(o.y for o in self.obstacles) - CHANNEL_RANGE_PADDING
        max_y = max(o.y + o.height for o in self.obstacles) + CHANNEL_RANGE_PADDING
        channels = []

        for left, right in zip(ordered, ordered[1:]):
            right_of_left = left.x + left.width
            left_of_right = right.x
            if left_of_right - right_of_left > self.channel_gap:
                channels.append(Channel(VERTICAL, (right_of_left + left_of_right) / 2, min_y, max_y))

        channels.append(Channel(VERTICAL, ordered[0].x - OUTER_CHANNEL_OFFSET, min_y, max_y))
        last = ordered[-1]
        channels.append(Channel(VERTICAL, last.x + last.width + OUTER_CHANNEL_OFFSET, min_y, max_y))
        return channels

    def segment_obstacle(
        self,
        ax: float,
        ay: float,
        bx: float,
        by: float,
        exclude: set[str] | frozenset[str] = frozenset(),
    ) -> ObstacleRect | None:
        """
        Return the first obstacle an axis-aligned segment passes through, or None.

        Diagonal segments never intersect. Obstacles owned by ids in `exclude`
        (normally the edge's own endpoints) are skipped.
        """
        seg_min_x, seg_max_x = min(ax, bx), max(ax, bx)
        seg_min_y, seg_max_y = min(ay, by), max(ay, by)

        for o in self.obstacles:
            if o.owner_id in exclude:
                continue
            right = o.x + o.width
            bottom = o.y + o.height

            if abs(ay - by) < EPSILON:
                y_inside = o.y - EPSILON < ay < bottom + EPSILON
                x_overlap = seg_max_x > o.x + EPSILON and seg_min_x < right - EPSILON
                if y_inside and x_overlap:
                    return o
            elif abs(ax - bx) < EPSILON:
                x_inside = o.x - EPSILON < ax < right + EPSILON
                y_overlap = seg_max_y > o.y + EPSILON and seg_min_y < bottom - EPSILON
                if x_inside and y_overlap:
                    return o

        return None

    def path_obstacles(
        self, points, exclude: set[str] | frozenset[str] = frozenset()
    ) -> list[ObstacleRect]:
        """All obstacles hit by any segment of a polyline, in segment order."""
        hits: list[ObstacleRect] = []
        for a, b in zip(points, points[1:]):
            o = self.segment_obstacle(a.x, a.y, b.x, b.y, exclude)
            if o is not None and o not in hits:
                hits.append(o)
        return hits

    def find_horizontal_channel(
        self,
        x_start: float,
        x_end: float,
        prefer_y: float,
        exclude: set[str] | frozenset[str] = frozenset(),
    ) -> float | None:
        """Y of the free horizontal channel covering x_start..x_end closest to prefer_y."""
        min_x, max_x = min(x_start, x_end), max(x_start, x_end)
        candidates = [
            ch.coordinate
            for ch in self.horizontal_channels
            if ch.range_min <= min_x and ch.range_max >= max_x
            and self.segment_obstacle(min_x, ch.coordinate, max_x, ch.coordinate, exclude) is None
        ]
        return _closest(candidates, prefer_y)

    def find_vertical_channel(
        self,
        y_start: float,
        y_end: float,
        prefer_x: float,
        exclude: set[str] | frozenset[str] = frozenset(),
    ) -> float | None:
        """X of the free vertical channel covering y_start..y_end closest to prefer_x."""
        min_y, max_y = min(y_start, y_end), max(y_start, y_end)
        candidates = [
            ch.coordinate
            for ch in self.vertical_channels
            if ch.range_min <= min_y and ch.range_max >= max_y
            and self.segment_obstacle(ch.coordinate, min_y, ch.coordinate, max_y, exclude) is None
        ]
        return _closest(candidates, prefer_x)


def _closest(candidates: list[float], preferred: float) -> float | None:
    # Ties go to the lowest coordinate so the result never depends on insertion order
    if not candidates:
        return None
    return min(candidates, key=lambda c: (abs(c - preferred), c))
