"""Delaunay triangulation kernel: predicates, triangle data structure,
point insertion, constraint insertion and refinement
"""

import logging

from qtri.delaunay.insert_kd import triangulate
from qtri.delaunay.helpers import ToPointsAndSegments

__all__ = ("triangulate", "ToPointsAndSegments")


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    from random import Random
    from qtri.delaunay.helpers import random_circle_vertices
    pts = random_circle_vertices(15000, rng=Random(0))
    triangulate(pts)
