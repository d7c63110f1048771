'''
Public mesh view and the operations that build, refine and extend it
'''
import copy
import numbers
import logging
from collections import namedtuple
from math import isfinite, isnan

from qtri.delaunay.cdt import mark_excluded
from qtri.delaunay.insert_kd import KDOrderPointInserter, triangulate
from qtri.delaunay.iter import FiniteEdgeIterator, TriangleIterator
from qtri.delaunay.preds import min_angle as triangle_min_angle, orient2d
from qtri.delaunay.refine import DEFAULT_MAX_STEINER, MAX_MIN_ANGLE, \
    RefinementReport, refine as refine_triangulation
from qtri.delaunay.tds import HOLE, NONE, SEGMENT, edge_key
from qtri.errors import ConfigurationError, InvalidInput

MeshTriangle = namedtuple('MeshTriangle',
                          'index vertices neighbours constrained')
MeshEdge = namedtuple('MeshEdge', 'a b constrained marker')


class Mesh(object):
    """A finalized triangulation.

    Only the kept triangles (not in a hole, nor outside of the outer
    boundary) and their vertices are exposed. Triangles are numbered
    0..n-1 in this view, neighbours that are not kept are None.
    """

    def __init__(self, triangulation, report=None):
        self.triangulation = triangulation
        self.report = report
        self._triangles = None
        self._vertices = None

    def _build(self):
        dt = self.triangulation
        kept = list(TriangleIterator(dt, kept_only=True))
        index = dict((t, i) for i, t in enumerate(kept))
        triangles = []
        used = set()
        for i, t in enumerate(kept):
            tri = dt.triangles[t]
            triangles.append(MeshTriangle(
                i,
                tuple(tri.vertices),
                tuple(index.get(n) for n in tri.neighbours),
                tuple(tri.constrained)))
            used.update(tri.vertices)
        self._triangles = triangles
        self._vertices = [dt.vertices[v] for v in sorted(used)]

    @property
    def triangles(self):
        if self._triangles is None:
            self._build()
        return self._triangles

    @property
    def vertices(self):
        if self._vertices is None:
            self._build()
        return self._vertices

    def vertex(self, id):
        """The vertex with the given id"""
        if id < 0 or id >= len(self.triangulation.vertices) or \
                self.triangulation.incident[id] is None:
            raise KeyError("No vertex with id {}".format(id))
        return self.triangulation.vertices[id]

    @property
    def edges(self):
        dt = self.triangulation
        out = []
        for edge in FiniteEdgeIterator(dt, interior_only=True):
            a, b = dt.segment(edge.triangle, edge.side)
            constrained = dt.triangles[edge.triangle].constrained[edge.side]
            out.append(MeshEdge(a, b, constrained,
                                dt.segments.get(edge_key(a, b))))
        return out

    @property
    def constrained_edges(self):
        return [edge for edge in self.edges if edge.constrained]

    def min_angle(self):
        """Smallest angle (degrees) over all triangles"""
        vs = self.triangulation.vertices
        return min(triangle_min_angle(*[vs[v] for v in t.vertices])
                   for t in self.triangles)

    def check_consistency(self):
        self.triangulation.check_consistency()

    def __str__(self):
        return "Mesh({} vertices, {} triangles)".format(
            len(self.vertices), len(self.triangles))


# -- validation of the input
def _as_point(pt):
    try:
        x, y = float(pt[0]), float(pt[1])
    except (TypeError, IndexError, ValueError):
        raise InvalidInput("Not a 2D point: {!r}".format(pt))
    if not (isfinite(x) and isfinite(y)):
        raise InvalidInput("Non-finite coordinate in point {!r}".format(pt))
    return (x, y)


def _as_points(points):
    return [_as_point(pt) for pt in points]


def _check_refinement(min_angle, max_area, max_steiner):
    if not isinstance(min_angle, numbers.Real) or isnan(min_angle) or \
            not (0.0 <= min_angle <= MAX_MIN_ANGLE):
        raise ConfigurationError(
            "Minimum angle should be in [0, {}] degrees, not {!r}".format(
                MAX_MIN_ANGLE, min_angle))
    if max_area is not None and (not isinstance(max_area, numbers.Real) or
                                 isnan(max_area) or max_area <= 0):
        raise ConfigurationError(
            "Maximum area should be positive, not {!r}".format(max_area))
    if not isinstance(max_steiner, numbers.Integral) or max_steiner < 0:
        raise ConfigurationError(
            "Steiner point budget should be a non-negative integer, "
            "not {!r}".format(max_steiner))


def _wants_refinement(min_angle, max_area):
    return min_angle > 0 or max_area is not None


def _segments_cross(p1, p2, q1, q2):
    """Do the closed segments p1-p2 and q1-q2 have a point in common?"""
    d1 = orient2d(q1, q2, p1)
    d2 = orient2d(q1, q2, p2)
    d3 = orient2d(p1, p2, q1)
    d4 = orient2d(p1, p2, q2)
    if ((d1 > 0 and d2 < 0) or (d1 < 0 and d2 > 0)) and \
            ((d3 > 0 and d4 < 0) or (d3 < 0 and d4 > 0)):
        return True

    def on_segment(a, b, c):
        return min(a[0], b[0]) <= c[0] <= max(a[0], b[0]) and \
            min(a[1], b[1]) <= c[1] <= max(a[1], b[1])
    return (d1 == 0 and on_segment(q1, q2, p1)) or \
        (d2 == 0 and on_segment(q1, q2, p2)) or \
        (d3 == 0 and on_segment(p1, p2, q1)) or \
        (d4 == 0 and on_segment(p1, p2, q2))


def _check_crossings(pts, segments):
    """Raises InvalidInput if two segments (given by point indices) that do
    not share an end point have a point in common."""
    boxes = []
    for (a, b, _) in segments:
        pa, pb = pts[a], pts[b]
        boxes.append((min(pa[0], pb[0]), max(pa[0], pb[0]),
                      min(pa[1], pb[1]), max(pa[1], pb[1]), a, b))
    boxes.sort()
    for i, (xmin, xmax, ymin, ymax, a, b) in enumerate(boxes):
        for (oxmin, oxmax, oymin, oymax, c, d) in boxes[i + 1:]:
            if oxmin > xmax:
                break
            if oymin > ymax or oymax < ymin:
                continue
            if len(set((a, b, c, d))) < 4:
                continue
            if _segments_cross(pts[a], pts[b], pts[c], pts[d]):
                raise InvalidInput(
                    "Boundary segments {} -> {} and {} -> {} intersect".format(
                        pts[a], pts[b], pts[c], pts[d]))


def _winding(pt, ring):
    """Winding number of the ring around pt, None if pt is on the ring"""
    winding = 0
    for a, b in zip(ring, ring[1:] + ring[:1]):
        side = orient2d(a, b, pt)
        if side == 0 and min(a[0], b[0]) <= pt[0] <= max(a[0], b[0]) and \
                min(a[1], b[1]) <= pt[1] <= max(a[1], b[1]):
            return None
        if a[1] <= pt[1] < b[1] and side > 0:
            winding += 1
        elif b[1] <= pt[1] < a[1] and side < 0:
            winding -= 1
    return winding


def _inside(ring, other):
    """Does ring lie inside other? None when every vertex (and edge
    midpoint) of ring is on other."""
    candidates = ring + [((a[0] + b[0]) * 0.5, (a[1] + b[1]) * 0.5)
                         for a, b in zip(ring, ring[1:] + ring[:1])]
    for pt in candidates:
        winding = _winding(pt, other)
        if winding is not None:
            return winding != 0
    return None


def _check_nesting(rings):
    """Holes have to be inside the outer boundary and outside each other"""
    outer, holes = rings[0], rings[1:]
    for k, hole in enumerate(holes, 1):
        if not _inside(hole, outer):
            raise InvalidInput(
                "Hole {} is not inside the outer boundary".format(k))
        for j, other in enumerate(holes, 1):
            if j != k and _inside(hole, other):
                raise InvalidInput(
                    "Hole {} lies inside hole {}".format(k, j))


def _boundary_input(points, boundaries):
    """Combine the free points and the boundary loops in one list of
    points, with markers, and a list of segments (start, end, marker)"""
    pts = _as_points(points)
    index = {}
    for i, pt in enumerate(pts):
        if pt in index:
            raise InvalidInput(
                "Duplicate point found for insertion: {} {}".format(*pt))
        index[pt] = i
    markers = [NONE] * len(pts)
    segments = []
    rings = []
    boundaries = list(boundaries)
    if len(boundaries) == 0:
        raise InvalidInput("No boundary given")
    for k, loop in enumerate(boundaries):
        marker = SEGMENT if k == 0 else HOLE
        ring = []
        for pt in _as_points(loop):
            if not ring or ring[-1] != pt:
                ring.append(pt)
        if len(ring) > 1 and ring[0] == ring[-1]:
            ring.pop()
        if len(set(ring)) < 3:
            raise InvalidInput(
                "Boundary {} has fewer than 3 distinct points".format(k))
        if all(orient2d(ring[0], ring[1], pt) == 0 for pt in ring[2:]):
            raise InvalidInput("Boundary {} has zero area".format(k))
        ids = []
        for pt in ring:
            if pt not in index:
                index[pt] = len(pts)
                pts.append(pt)
                markers.append(marker)
            elif markers[index[pt]] == NONE:
                markers[index[pt]] = marker
            ids.append(index[pt])
        if len(set(ids)) != len(ids):
            raise InvalidInput(
                "Boundary {} visits a point more than once".format(k))
        for i in range(len(ids)):
            segments.append((ids[i], ids[(i + 1) % len(ids)], marker))
        rings.append(ring)
    _check_crossings(pts, segments)
    _check_nesting(rings)
    return pts, markers, segments


# -- public operations
def build_mesh(points, min_angle=0.0, max_area=None,
               max_steiner=DEFAULT_MAX_STEINER, seed=0):
    """Delaunay triangulation of a set of points, optionally refined so that
    no angle is smaller than min_angle (degrees) and no triangle larger
    than max_area.
    """
    _check_refinement(min_angle, max_area, max_steiner)
    pts = _as_points(points)
    if len(pts) < 3:
        raise InvalidInput("At least 3 points are needed, got {}".format(
            len(pts)))
    dt = triangulate(pts, seed=seed)
    report = None
    if _wants_refinement(min_angle, max_area):
        report = refine_triangulation(dt, min_angle, max_area, max_steiner)
    dt.check_consistency()
    return Mesh(dt, report)


def build_constrained_mesh(points, boundaries, min_angle=0.0, max_area=None,
                           max_steiner=DEFAULT_MAX_STEINER, seed=0):
    """Constrained Delaunay triangulation of the points and boundary loops.

    The first loop is the outer boundary, the others are holes. Triangles
    outside the outer boundary and inside holes are not part of the mesh.
    """
    _check_refinement(min_angle, max_area, max_steiner)
    pts, markers, segments = _boundary_input(points, boundaries)
    dt = triangulate(pts, segments, markers, seed=seed)
    kept = mark_excluded(dt)
    if kept == 0:
        raise InvalidInput("No triangles inside the boundaries")
    report = None
    if _wants_refinement(min_angle, max_area):
        report = refine_triangulation(dt, min_angle, max_area, max_steiner)
    dt.check_consistency()
    return Mesh(dt, report)


def refine(mesh, min_angle, max_area=None, max_steiner=DEFAULT_MAX_STEINER):
    """Returns a refined copy of the mesh"""
    _check_refinement(min_angle, max_area, max_steiner)
    dt = copy.deepcopy(mesh.triangulation)
    if _wants_refinement(min_angle, max_area):
        report = refine_triangulation(dt, min_angle, max_area, max_steiner)
    else:
        report = RefinementReport()
    dt.check_consistency()
    return Mesh(dt, report)


def insert_point(mesh, point):
    """Returns a copy of the mesh with one point more"""
    x, y = _as_point(point)
    if mesh.triangulation.find_vertex(x, y) is not None:
        raise InvalidInput(
            "Duplicate point found for insertion: {} {}".format(x, y))
    dt = copy.deepcopy(mesh.triangulation)
    v = dt.add_vertex(x, y)
    KDOrderPointInserter(dt).append(v.id)
    logging.debug("inserted {} as vertex {}".format(v, v.id))
    dt.check_consistency()
    return Mesh(dt, mesh.report)
