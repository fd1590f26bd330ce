from itertools import combinations
from typing import List, Sequence

from shared.models import Point3D, Triangle


def create_triangle_tasks(points: Sequence[Point3D]) -> List[Triangle]:
    """Every unordered triple of points (indices i < j < k), each exactly once."""
    return [tuple(triple) for triple in combinations(points, 3)]
