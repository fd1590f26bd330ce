"""
Triangle geometry shared by the worker node and the coordinator's local fallback.

Sides are always ordered (AB, BC, CA) and ``angles()[i]`` is the interior
angle opposite side ``i``.
"""

import math
from typing import Iterable, List, Optional

from pydantic import ValidationError

from shared.models import Point3D, Triangle, TriangleProperties

# Right triangles computed with round-off land a hair above 90 degrees.
RIGHT_ANGLE_TOLERANCE = 1e-9


def distance(p1: Point3D, p2: Point3D) -> float:
    return math.dist((p1.x, p1.y, p1.z), (p2.x, p2.y, p2.z))


def side_lengths(a: Point3D, b: Point3D, c: Point3D):
    return distance(a, b), distance(b, c), distance(c, a)


def is_valid_triangle(a: Point3D, b: Point3D, c: Point3D) -> bool:
    ab, bc, ca = side_lengths(a, b, c)
    return ab + bc > ca and ab + ca > bc and bc + ca > ab


def _angle_opposite(opposite: float, s1: float, s2: float) -> float:
    cosine = (s1 ** 2 + s2 ** 2 - opposite ** 2) / (2 * s1 * s2)
    return math.degrees(math.acos(max(-1.0, min(1.0, cosine))))


def _normalized(a: float, b: float, c: float):
    """Sides divided by the longest one, plus that scale.

    Keeps squares and Heron's product in range for very large triangles.
    """
    if not all(math.isfinite(side) and side > 0 for side in (a, b, c)):
        raise ValueError(f"Degenerate sides: {a}, {b}, {c}")
    scale = max(a, b, c)
    return a / scale, b / scale, c / scale, scale


def angles(a: float, b: float, c: float) -> List[float]:
    """Interior angles in degrees, opposite sides ``a``, ``b`` and ``c``.

    Raises ValueError when the sides cannot produce finite angles.
    """
    a, b, c, _ = _normalized(a, b, c)
    angle_a = _angle_opposite(a, b, c)
    angle_b = _angle_opposite(b, a, c)
    # Round-off can push the remainder just below zero for flat triangles
    result = [angle_a, angle_b, max(0.0, 180 - angle_a - angle_b)]
    if not all(math.isfinite(angle) for angle in result):
        raise ValueError(f"Non-finite angles for sides: {a}, {b}, {c}")
    return result


def area(a: float, b: float, c: float) -> float:
    """Heron's formula; ``inf`` when the area itself is beyond float range."""
    a, b, c, scale = _normalized(a, b, c)
    s = (a + b + c) / 2
    unit_area = math.sqrt(max(0.0, s * (s - a) * (s - b) * (s - c)))
    return unit_area * scale * scale


def classify(a: Point3D, b: Point3D, c: Point3D) -> Optional[TriangleProperties]:
    """Properties of the triangle ABC if it is obtuse, otherwise None."""
    if not is_valid_triangle(a, b, c):
        return None

    sides = side_lengths(a, b, c)
    try:
        triangle_angles = angles(*sides)
        triangle_area = area(*sides)
    except (ValueError, OverflowError):
        return None

    if not any(angle > 90 + RIGHT_ANGLE_TOLERANCE for angle in triangle_angles):
        return None
    if not math.isfinite(triangle_area):
        return None

    try:
        return TriangleProperties(
            vertices=(a, b, c),
            angles=tuple(triangle_angles),
            area=triangle_area,
        )
    except ValidationError:
        return None


def evaluate_tasks(tasks: Iterable[Triangle]) -> List[TriangleProperties]:
    results = []
    for a, b, c in tasks:
        properties = classify(a, b, c)
        if properties is not None:
            results.append(properties)
    return results
