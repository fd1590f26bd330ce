from shared.models import Point3D


def P(x, y, z=0.0) -> Point3D:
    return Point3D(x=x, y=y, z=z)
