import pytest

from framework.world.map import DatabaseMapProvider
from framework.world.navigation import GridPathFinder, RayFieldOfView


def make_map(rows):
    return DatabaseMapProvider(None)._parse_map("test", {"id": "test", "ground": rows})


@pytest.fixture
def maze():
    return make_map([
        "#######",
        "#.....#",
        "#.###.#",
        "#.#...#",
        "#.#.###",
        "#...#.#",
        "#######",
    ])


def test_shortest_path(maze):
    path = GridPathFinder().find_path(maze, (1, 1), (3, 3))

    assert path[-1] == (3, 3)
    assert (1, 1) not in path
    assert len(path) == 8
    for (ax, ay), (bx, by) in zip([(1, 1)] + path, path):
        assert abs(ax - bx) + abs(ay - by) == 1
        assert maze.is_walkable(bx, by)


def test_no_path(maze):
    finder = GridPathFinder()

    assert finder.find_path(maze, (1, 1), (1, 1)) == []
    assert finder.find_path(maze, (1, 1), (0, 0)) == []
    assert finder.find_path(maze, (1, 1), (5, 5)) == []


def test_step_limit(maze):
    assert GridPathFinder(max_steps=2).find_path(maze, (1, 1), (3, 3)) == []


def test_field_of_view_stops_at_walls():
    room = make_map([
        "#########",
        "#...#...#",
        "#...#...#",
        "#########",
    ])

    visible = RayFieldOfView(radius=6).compute(room, (2, 1))

    assert (2, 1) in visible
    assert (3, 2) in visible
    # The wall is seen, the room behind it is not
    assert (4, 1) in visible
    assert (6, 1) not in visible


def test_field_of_view_radius():
    hall = make_map(["." * 20])

    visible = RayFieldOfView(radius=3).compute(hall, (0, 0))

    assert (3, 0) in visible
    assert (4, 0) not in visible
