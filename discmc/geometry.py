"""
Planar geometry helpers used for non-rectangular boundaries.

Conventions:
    - Points are plain ``(x, y)`` tuples.
    - A canonical polygon starts at its lowest vertex (ties broken by the
      smallest x) and winds clockwise.
    - ``winding()`` returns +1 for clockwise and -1 for anticlockwise order.
"""

from __future__ import annotations

import math
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

Point = Tuple[float, float]
BoundingBox = Tuple[float, float, float, float]

PARALLEL_TOLERANCE = 1e-9


def distance(a: Point, b: Point) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def distance_to_segment(point: Point, start: Point, end: Point) -> float:
    """Distance from ``point`` to the closed segment ``start``-``end``."""
    sx, sy = start
    ex, ey = end
    length2 = (ex - sx) ** 2 + (ey - sy) ** 2
    if length2 == 0.0:
        return distance(point, start)
    t = ((point[0] - sx) * (ex - sx) + (point[1] - sy) * (ey - sy)) / length2
    t = min(1.0, max(0.0, t))
    projection = (sx + t * (ex - sx), sy + t * (ey - sy))
    return distance(point, projection)


class Polygon:
    """
    Ordered vertex list describing a closed simple polygon.

    The polygon is mutated in place by ``expand``, ``translate``, ``rotate``
    and ``order_vertices``; use ``copy`` when an independent polygon is
    needed.
    """

    def __init__(self, vertices: Optional[Iterable[Point]] = None):
        self._vertices: List[Point] = []
        for x, y in vertices or ():
            self.add_vertex(x, y)

    def add_vertex(self, x: float, y: float) -> None:
        self._vertices.append((float(x), float(y)))

    def __len__(self) -> int:
        return len(self._vertices)

    def __iter__(self) -> Iterator[Point]:
        return iter(self._vertices)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Polygon):
            return NotImplemented
        return self._vertices == other._vertices

    def __repr__(self) -> str:
        return f"Polygon({self._vertices!r})"

    @property
    def n_vertices(self) -> int:
        return len(self._vertices)

    def vertex(self, index: int) -> Point:
        return self._vertices[index]

    def vertices(self) -> List[Point]:
        return list(self._vertices)

    def copy(self) -> "Polygon":
        return Polygon(self._vertices)

    def edges(self) -> Iterator[Tuple[Point, Point]]:
        n = len(self._vertices)
        for i in range(n):
            yield self._vertices[i], self._vertices[(i + 1) % n]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def signed_area(self) -> float:
        """Shoelace area, positive for anticlockwise order."""
        total = 0.0
        for (x1, y1), (x2, y2) in self.edges():
            total += x1 * y2 - x2 * y1
        return total / 2.0

    def area(self) -> float:
        return abs(self.signed_area())

    def bounding_box(self) -> BoundingBox:
        """Return ``(x_min, y_min, x_max, y_max)``."""
        if not self._vertices:
            return (0.0, 0.0, 0.0, 0.0)
        xs = [x for x, _ in self._vertices]
        ys = [y for _, y in self._vertices]
        return (min(xs), min(ys), max(xs), max(ys))

    def width(self) -> float:
        x_min, _, x_max, _ = self.bounding_box()
        return x_max - x_min

    def height(self) -> float:
        _, y_min, _, y_max = self.bounding_box()
        return y_max - y_min

    def max_dist(self) -> float:
        """Largest vertex to vertex distance."""
        best = 0.0
        for i, a in enumerate(self._vertices):
            for b in self._vertices[i + 1:]:
                best = max(best, distance(a, b))
        return best

    def center(self) -> Point:
        n = len(self._vertices)
        if n == 0:
            return (0.0, 0.0)
        return (
            sum(x for x, _ in self._vertices) / n,
            sum(y for _, y in self._vertices) / n,
        )

    def winding(self) -> int:
        return 1 if self.signed_area() < 0.0 else -1

    def is_parallelogram(self) -> bool:
        """True for four vertices whose opposite sides are equal 2-vectors."""
        if len(self._vertices) != 4:
            return False
        v0, v1, v2, v3 = self._vertices
        pairs = (
            (v1[0] - v0[0], v2[0] - v3[0]),
            (v1[1] - v0[1], v2[1] - v3[1]),
            (v2[0] - v1[0], v3[0] - v0[0]),
            (v2[1] - v1[1], v3[1] - v0[1]),
        )
        return all(math.isclose(a, b, rel_tol=PARALLEL_TOLERANCE, abs_tol=PARALLEL_TOLERANCE) for a, b in pairs)

    def is_axis_aligned_rectangle(self) -> bool:
        if not self.is_parallelogram():
            return False
        for (x1, y1), (x2, y2) in self.edges():
            if not (
                math.isclose(x1, x2, abs_tol=PARALLEL_TOLERANCE)
                or math.isclose(y1, y2, abs_tol=PARALLEL_TOLERANCE)
            ):
                return False
        return True

    # ------------------------------------------------------------------
    # Containment
    # ------------------------------------------------------------------
    def is_inside(self, x: float, y: float, radius: float = 0.0) -> bool:
        """
        Crossing-number containment test.

        Rays are cast both left and right of the point and the two parities
        are combined with OR. Each edge owns its lower end only, so a ray
        through a vertex is counted once. Horizontal edges are skipped.
        With a positive ``radius`` the point must also be at least that far
        from every edge.
        """
        if len(self._vertices) < 3:
            return False
        left = False
        right = False
        for (cx, cy), (nx, ny) in self.edges():
            if (cy <= y < ny) or (ny <= y < cy):
                x_cross = cx + (y - cy) * (nx - cx) / (ny - cy)
                if x < x_cross:
                    right = not right
                if x > x_cross:
                    left = not left
        inside = left or right
        if not inside or radius <= 0.0:
            return inside
        point = (x, y)
        for start, end in self.edges():
            if distance_to_segment(point, start, end) < radius:
                return False
        return True

    def contains(self, other: "Polygon") -> bool:
        return all(self.is_inside(x, y) for x, y in other)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def expand(self, scale: float) -> None:
        """Scale uniformly about the origin."""
        self._vertices = [(x * scale, y * scale) for x, y in self._vertices]

    def translate(self, dx: float, dy: float) -> None:
        self._vertices = [(x + dx, y + dy) for x, y in self._vertices]

    def rotate(self, angle: float) -> None:
        """Rotate clockwise about the origin by ``angle`` radians."""
        c = math.cos(angle)
        s = math.sin(angle)
        self._vertices = [(x * c + y * s, -x * s + y * c) for x, y in self._vertices]

    def order_vertices(self) -> None:
        """Put the lowest (then leftmost) vertex first and wind clockwise."""
        if len(self._vertices) < 3:
            return
        start = min(range(len(self._vertices)), key=lambda i: (self._vertices[i][1], self._vertices[i][0]))
        ordered = self._vertices[start:] + self._vertices[:start]
        if Polygon(ordered).winding() < 0:
            ordered = [ordered[0]] + ordered[1:][::-1]
        self._vertices = ordered


def _cross(o: Point, a: Point, b: Point) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def convex_hull(points: Sequence[Point], radius: float = 0.0) -> Polygon:
    """
    Convex hull of ``points`` by the monotone chain algorithm.

    With a positive ``radius`` every hull edge is pushed outward along its
    normal by that distance. The result is in canonical order.
    """
    unique = sorted(set((float(x), float(y)) for x, y in points))
    if len(unique) < 3:
        raise ValueError("A convex hull needs at least three distinct points.")

    lower: List[Point] = []
    for p in unique:
        while len(lower) >= 2 and _cross(lower[-2], lower[-1], p) <= 0.0:
            lower.pop()
        lower.append(p)
    upper: List[Point] = []
    for p in reversed(unique):
        while len(upper) >= 2 and _cross(upper[-2], upper[-1], p) <= 0.0:
            upper.pop()
        upper.append(p)
    hull = lower[:-1] + upper[:-1]
    if len(hull) < 3:
        raise ValueError("A convex hull needs at least three non-collinear points.")

    if radius > 0.0:
        hull = _inflate_anticlockwise(hull, radius)
    polygon = Polygon(hull)
    polygon.order_vertices()
    return polygon


def _outward_normal(start: Point, end: Point) -> Point:
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length = math.hypot(dx, dy)
    return (dy / length, -dx / length)


def _inflate_anticlockwise(hull: List[Point], radius: float) -> List[Point]:
    # Each vertex moves to the intersection of its two offset edges.
    n = len(hull)
    inflated: List[Point] = []
    for i, (x, y) in enumerate(hull):
        n1 = _outward_normal(hull[i - 1], hull[i])
        n2 = _outward_normal(hull[i], hull[(i + 1) % n])
        scale = radius / (1.0 + n1[0] * n2[0] + n1[1] * n2[1])
        inflated.append((x + scale * (n1[0] + n2[0]), y + scale * (n1[1] + n2[1])))
    return inflated
