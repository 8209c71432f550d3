import pytest

from models import NodeBounds, RoutePoint
from obstacles import ObstacleIndex
from routing import (
    CHILD,
    MARRIAGE,
    TRUNK,
    RouteRequest,
    normalize_route,
    route_child_edge,
    route_edge,
    route_edges,
    route_marriage_edge,
    route_trunk_edge,
)


def P(x, y):
    return RoutePoint(x, y)


def test_unobstructed_marriage_edge_is_three_points(monkeypatch):
    index = ObstacleIndex(
        {
            "person_1": NodeBounds(0, 0, 176, 160),
            "person_2": NodeBounds(192, 0, 176, 160),
        }
    )

    def no_channel_search(*args, **kwargs):
        raise AssertionError("channel search should not run")

    monkeypatch.setattr(index, "find_horizontal_channel", no_channel_search)
    monkeypatch.setattr(index, "find_vertical_channel", no_channel_search)

    request = RouteRequest(1, 2, "spouse", MARRIAGE, P(176, 80), P(192, 80), "person_1", "person_2")
    assert route_edge(request, index) == [P(176, 80), P(176, 80), P(192, 80)]


def test_blocked_marriage_edge_detours_through_channels():
    # Obstacle sits on the vertical leg of the corner path
    index = ObstacleIndex({"person_3": NodeBounds(-20, 40, 40, 20)})

    route = route_marriage_edge(P(0, 0), P(60, 100), index)

    assert route == [P(0, 0), P(0, -8), P(68, -8), P(68, 100), P(60, 100)]


def test_marriage_detour_cut_off_from_target_drops_straight_down():
    # The free vertical channel at x=80 meets the target row inside person_4
    index = ObstacleIndex(
        {
            "person_3": NodeBounds(-20, 40, 40, 20),
            "person_4": NodeBounds(140, 90, 20, 20),
        }
    )

    route = route_marriage_edge(P(0, 0), P(200, 100), index)

    assert route == [P(0, 0), P(0, -8), P(200, -8), P(200, 100)]
    assert index.path_obstacles(route) == []


def test_marriage_edge_without_channel_keeps_corner_path():
    index = ObstacleIndex({"person_3": NodeBounds(-20, 40, 40, 20)})

    route = route_marriage_edge(P(0, 0), P(300, 100), index)

    assert route == [P(0, 0), P(0, 100), P(300, 100)]


def test_trunk_straight_when_aligned_and_free():
    index = ObstacleIndex({})
    assert route_trunk_edge(P(0, 0), P(0, 100), index) == [P(0, 0), P(0, 100)]


def test_trunk_detours_around_obstacle_between_aligned_endpoints():
    index = ObstacleIndex({"person_3": NodeBounds(-20, 80, 40, 40)})

    route = route_trunk_edge(P(0, 60), P(0, 140), index)

    assert route == [P(0, 60), P(0, 100), P(-68, 100), P(-68, 140), P(0, 140)]


def test_trunk_z_through_midline():
    index = ObstacleIndex({})
    assert route_trunk_edge(P(0, 0), P(100, 200), index) == [P(0, 0), P(0, 100), P(100, 100), P(100, 200)]


def test_trunk_midline_moves_to_free_channel():
    index = ObstacleIndex(
        {
            "person_3": NodeBounds(20, 90, 40, 20),
            "person_4": NodeBounds(20, 190, 40, 20),
        }
    )

    route = route_trunk_edge(P(0, 0), P(80, 200), index)

    # Obstacles span 82..118 and 182..218; the channel between them is at 150
    assert route == [P(0, 0), P(0, 150), P(80, 150), P(80, 200)]


def test_child_edge_shapes():
    index = ObstacleIndex({})

    assert route_child_edge(P(0, 0), P(0, 100), index) == [P(0, 0), P(0, 100)]
    assert route_child_edge(P(0, 0), P(100, 200), index) == [P(0, 0), P(100, 0), P(100, 200)]


def test_blocked_child_edge_uses_channel():
    index = ObstacleIndex({"person_3": NodeBounds(40, -10, 20, 20)})

    route = route_child_edge(P(0, 0), P(100, 200), index)

    assert route == [P(0, 0), P(0, 58), P(100, 58), P(100, 200)]


def test_endpoints_are_owned_and_excluded():
    index = ObstacleIndex(
        {
            "person_1": NodeBounds(-50, -100, 100, 100),
            "person_2": NodeBounds(50, 200, 100, 100),
        }
    )
    request = RouteRequest(1, 2, "parent-child", CHILD, P(0, 0), P(100, 200), "person_1", "person_2")

    assert route_edge(request, index) == [P(0, 0), P(100, 0), P(100, 200)]


@pytest.mark.parametrize("kind", [MARRIAGE, TRUNK, CHILD, "unknown"])
def test_routes_keep_their_endpoints(kind):
    index = ObstacleIndex(
        {
            "person_3": NodeBounds(20, 20, 60, 60),
            "person_4": NodeBounds(120, 150, 60, 60),
        }
    )
    request = RouteRequest(1, 2, "parent-child", kind, P(10.123, 0), P(200.456, 300), "person_1", "person_2")

    [route] = route_edges([request], index)

    assert route[0] == request.source
    assert route[-1] == request.target


def test_normalize_route_drops_duplicates_and_collinear_points():
    points = [P(0.123, 0), P(0, 0.2), P(0, 50), P(0.004, 100), P(50, 100)]

    assert normalize_route(points) == [P(0.123, 0), P(0, 100), P(50, 100)]


def test_normalize_route_keeps_exact_endpoints():
    points = [P(1.005, 2.0049), P(1.005, 2.0049), P(10.111, 2.0049)]

    assert normalize_route(points) == [P(1.005, 2.0049), P(10.111, 2.0049)]
