'''
Helpers to prepare the input of a triangulation
'''
from math import sqrt, pi, cos, sin
from random import Random

from qtri.errors import InvalidInput
# ------------------------------------------------------------------------------
# Generate randomized point sets (for testing purposes)
#


def random_sorted_vertices(n=10, rng=None):
    """Returns a sorted list with (at most) n random vertices on a grid
    """
    rng = rng if rng is not None else Random()
    W = n
    vertices = []
    for _ in range(n):
        x = rng.randint(0, W)
        y = rng.randint(0, W)
        vertices.append((x / float(W), y / float(W)))
    vertices = list(set(vertices))
    vertices.sort()
    return vertices


def random_circle_vertices(n=10, cx=0, cy=0, rng=None):
    """Returns a list with n random vertices in a circle

    Method according to:

    http://www.anderswallin.net/2009/05/uniform-random-points-in-a-circle-using-polar-coordinates/
    """
    rng = rng if rng is not None else Random()
    vertices = []
    for _ in range(n):
        r = sqrt(rng.random())
        t = 2 * pi * rng.random()
        x = r * cos(t)
        y = r * sin(t)
        vertices.append((x+cx, y+cy))
    vertices = list(set(vertices))
    vertices.sort()
    return vertices


def jittered_grid(width, height, spacing, rng=None):
    """Returns the points of a square grid (within width x height) with
    every point moved randomly within its grid cell, so that the points are
    well spread without looking regular.
    """
    rng = rng if rng is not None else Random()
    radius = spacing / 2.0
    jittering = radius * 0.9  # max deviation
    points = []
    y = radius
    while y < height:
        x = radius
        while x < width:
            xj = min(x + rng.random() * 2 * jittering - jittering, width)
            yj = min(y + rng.random() * 2 * jittering - jittering, height)
            points.append((xj, yj))
            x += spacing
        y += spacing
    return points


class ToPointsAndSegments(object):
    """Helper class to convert a set of polygons to points and boundary
    loops. De-dups duplicate points.

    The rings of the polygons that are added are kept as boundaries (the
    first ring of the first polygon is the outer boundary, all other rings
    are holes), suited for build_constrained_mesh.
    """

    def __init__(self):
        self.points = []
        self.boundaries = []
        self._points_idx = {}

    def add_polygon(self, polygon):
        """Add a polygon its points and rings to the global collection

        A polygon is a list of lists (rings), where every ring contains vertex
        objects (e.g. tuples with 2 elements).
        Important: The first and last point of a ring have to be the same
        vertex.
        """
        for ring in polygon:
            if len(ring) < 4 or tuple(ring[0]) != tuple(ring[-1]):
                raise InvalidInput("Ring is not closed: {}".format(ring))
            # skip last point of ring; should be duplicate of first
            for pt in ring[:-1]:
                self.add_point(pt)
            self.boundaries.append([self.points[self._points_idx[
                tuple(map(float, pt))]] for pt in ring[:-1]])

    def add_point(self, point):
        """Add a point, returns its index.
        """
        point = tuple(map(float, point))
        # -- point is not present
        if point not in self._points_idx:
            idx = len(self.points)
            self._points_idx[point] = idx
            self.points.append(point)
        else:
            idx = self._points_idx[point]
        return idx

