"""
Default grid services for the PathFinder and FieldOfView protocols.
"""

from __future__ import annotations

import math
from collections import deque

from framework.world.map import MapData


NEIGHBORS_4 = ((0, -1), (0, 1), (-1, 0), (1, 0))


class GridPathFinder:
    """
    Breadth-first shortest path over walkable tiles, 4-directional.

    Gives up after max_steps expanded tiles.
    """

    def __init__(self, max_steps: int = 2000):
        self.max_steps = max_steps

    def find_path(
        self, map_data: MapData, start: tuple[int, int], goal: tuple[int, int],
    ) -> list[tuple[int, int]]:
        if start == goal or not map_data.is_walkable(*goal):
            return []

        parents: dict[tuple[int, int], tuple[int, int]] = {}
        seen = {start}
        queue = deque([start])
        steps = 0

        while queue and steps < self.max_steps:
            steps += 1
            current = queue.popleft()
            if current == goal:
                path = [current]
                while path[-1] in parents and parents[path[-1]] != start:
                    path.append(parents[path[-1]])
                path.reverse()
                return path

            x, y = current
            for dx, dy in NEIGHBORS_4:
                nxt = (x + dx, y + dy)
                if nxt not in seen and map_data.is_walkable(*nxt):
                    seen.add(nxt)
                    parents[nxt] = current
                    queue.append(nxt)

        return []


class RayFieldOfView:
    """Casts evenly spaced rays; a ray stops at the first opaque tile (which is itself visible)."""

    def __init__(self, radius: int = 8, rays: int = 72):
        self.radius = radius
        self.rays = rays

    def compute(self, map_data: MapData, origin: tuple[int, int]) -> set[tuple[int, int]]:
        ox, oy = origin
        visible = {origin}

        for i in range(self.rays):
            angle = (i / self.rays) * math.pi * 2
            dx, dy = math.cos(angle), math.sin(angle)

            for dist in range(1, self.radius + 1):
                x = round(ox + dx * dist)
                y = round(oy + dy * dist)
                if not map_data.in_bounds(x, y):
                    break
                visible.add((x, y))
                if not map_data.is_transparent(x, y):
                    break

        return visible
