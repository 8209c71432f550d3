from models import NodeBounds, RoutePoint
from obstacles import ObstacleIndex


def two_stacked_nodes():
    return ObstacleIndex(
        {
            "person_1": NodeBounds(0, 0, 100, 50),
            "person_2": NodeBounds(0, 200, 100, 50),
        }
    )


def test_obstacles_are_inflated_by_margin():
    index = ObstacleIndex(
        {
            "person_1": NodeBounds(0, 0, 100, 50),
            "fu_pair_1": NodeBounds(200, 0, 40, 20),
        }
    )
    person, pair = index.obstacles

    assert (person.x, person.y, person.width, person.height) == (-8, -8, 116, 66)
    assert (pair.x, pair.y, pair.width, pair.height) == (196, -4, 48, 28)


def test_horizontal_channels():
    index = two_stacked_nodes()
    coordinates = sorted(ch.coordinate for ch in index.horizontal_channels)

    # Midway through the gap, plus one above and one below everything
    assert coordinates == [-48, 125, 298]
    assert all(ch.range_min == -58 and ch.range_max == 158 for ch in index.horizontal_channels)


def test_narrow_gaps_are_not_channels():
    index = ObstacleIndex(
        {
            "person_1": NodeBounds(0, 0, 100, 50),
            "person_2": NodeBounds(0, 70, 100, 50),
        }
    )
    assert sorted(ch.coordinate for ch in index.horizontal_channels) == [-48, 168]


def test_vertical_channels():
    index = ObstacleIndex(
        {
            "person_1": NodeBounds(0, 0, 100, 50),
            "person_2": NodeBounds(300, 0, 100, 50),
        }
    )
    assert sorted(ch.coordinate for ch in index.vertical_channels) == [-48, 200, 448]


def test_segment_obstacle():
    index = two_stacked_nodes()

    hit = index.segment_obstacle(50, -100, 50, 400)
    assert hit.owner_id == "person_1"
    assert index.segment_obstacle(50, -100, 50, 400, exclude={"person_1"}).owner_id == "person_2"
    assert index.segment_obstacle(-100, 125, 300, 125) is None

    # Diagonal segments never intersect
    assert index.segment_obstacle(-100, -100, 300, 400) is None


def test_path_obstacles():
    index = two_stacked_nodes()
    points = [RoutePoint(50, -100), RoutePoint(50, 125), RoutePoint(50, 400)]

    assert [o.owner_id for o in index.path_obstacles(points)] == ["person_1", "person_2"]
    assert index.path_obstacles(points, exclude={"person_1", "person_2"}) == []


def test_closest_channel_wins():
    index = two_stacked_nodes()

    assert index.find_horizontal_channel(0, 100, 130) == 125
    assert index.find_horizontal_channel(0, 100, 300) == 298


def test_equally_close_channels_pick_lowest_coordinate():
    index = two_stacked_nodes()

    # -48 and 125 are both 86.5 away from 38.5
    assert index.find_horizontal_channel(0, 100, 38.5) == -48
    assert index.find_horizontal_channel(100, 0, 38.5) == -48


def test_channel_must_cover_the_span():
    index = two_stacked_nodes()
    assert index.find_horizontal_channel(0, 500, 125) is None


def test_empty_index_has_no_channels():
    index = ObstacleIndex({})
    assert index.horizontal_channels == []
    assert index.find_vertical_channel(0, 100, 0) is None
