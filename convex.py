"""
Newton polygon of a polynomial.

Given the log-moduli log|a_0|, ..., log|a_n| of the coefficients, the vertices
of the upper convex hull of the points (i, log|a_i|) (equivalently the lower
envelope of -log|a_i|) split the roots into groups of roughly equal modulus:
the edge between vertices i < j carries j - i roots of modulus close to
(|a_i| / |a_j|)^(1 / (j - i)).
"""

from typing import List, Sequence


def _cross(o, a, b) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def newton_polygon(log_moduli: Sequence[float]) -> List[bool]:
    """
    Vertices of the upper convex hull of (i, log_moduli[i]).

    Returns:
        Bitmap h[0..n]; h[i] is True when i is a vertex. The end points are
        always vertices; points lying on an edge are not.
    """
    n = len(log_moduli) - 1
    hull: List[int] = []
    for i in range(n + 1):
        point = (i, log_moduli[i])
        # keep only clockwise (right) turns
        while len(hull) >= 2 and _cross(
                (hull[-2], log_moduli[hull[-2]]),
                (hull[-1], log_moduli[hull[-1]]),
                point) >= 0:
            hull.pop()
        hull.append(i)

    h = [False] * (n + 1)
    for i in hull:
        h[i] = True
    return h
