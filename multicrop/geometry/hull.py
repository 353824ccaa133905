"""Convex hull via Andrew's monotone chain."""

from typing import Iterable, List, Sequence, Tuple

Point = Tuple[float, float]


def cross(o: Point, a: Point, b: Point) -> float:
    """Z component of (a - o) x (b - o); positive for a left turn."""
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def _half_chain(points: Iterable[Point]) -> List[Point]:
    chain: List[Point] = []
    for p in points:
        while len(chain) >= 2 and cross(chain[-2], chain[-1], p) <= 0:
            chain.pop()
        chain.append(p)
    return chain


def convex_hull(points: Sequence[Point]) -> List[Point]:
    """Compute the convex hull of a point set.

    Points are sorted by x then y; a lower and an upper chain are built,
    each dropping points that do not make a strict left turn, so collinear
    points on an edge are removed.

    Args:
        points: Input points as (x, y)

    Returns:
        Hull vertices, counter-clockwise, starting at the smallest (x, y).
        Fewer than three distinct input points are returned sorted as-is.
    """
    pts = sorted(set(points))
    if len(pts) < 3:
        return pts

    lower = _half_chain(pts)
    upper = _half_chain(reversed(pts))

    # Last point of each chain is the first point of the other
    return lower[:-1] + upper[:-1]


def polygon_area(points: Sequence[Point]) -> float:
    """Signed shoelace area; positive when the vertices run counter-clockwise."""
    n = len(points)
    total = 0.0
    for i in range(n):
        x1, y1 = points[i]
        x2, y2 = points[(i + 1) % n]
        total += x1 * y2 - x2 * y1
    return total / 2.0
