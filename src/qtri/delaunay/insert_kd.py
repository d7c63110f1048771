'''
Incremental Delaunay triangulation: points are inserted in kD-tree order
with the Bowyer-Watson algorithm (the cavity of triangles whose
circumcircle contains a new point is replaced by a fan around the point).
'''

import operator
import logging
import time

from qtri.delaunay.tds import box, ccw, cw, edge_key, GHOST, NONE, \
    Triangulation
from qtri.delaunay.preds import orient2d
from qtri.delaunay.cdt import ConstraintInserter
from qtri.delaunay.iter import FiniteEdgeIterator
from qtri.errors import DegenerateGeometry, InternalConsistencyError


def decorate(points):
    """Adds index to every item in points list
    (every item is dealt with as 2-tuple)

    Returns a list with 3-tuples, where every 3-tuple contains:

        (x, y, index in the original *points* list)
    """
    ret = [(pt[0], pt[1], idx) for (idx, pt) in enumerate(points, start=0)]
    return ret


def largest_axis(aabb):
    """Given an axis-aligned bounding box as two 2-tuples, what is the
    largest axis of this box
    """
    dx = aabb[1][0] - aabb[0][0]
    dy = aabb[1][1] - aabb[0][1]
    if dx > dy:
        return 0
    else:
        return 1


def kdsort(points):
    """Sorts a list of tuples based on first two elements along kD-tree order.

    To every tuple in the result list the parent point index (according
    to the kD-tree order) is added, so that this point can be used
    to start a walk in the triangulation from that vertex.
    """
    stack = []  # points, parent, box
    result = []
    if not points:
        return result
    stack.append((points[:], None, box(points)))
    while stack:
        points, parent_id, aabb = stack.pop()
        axis = largest_axis(aabb)
        # ties on the axis are broken on the other ordinate, so that
        # the order does not depend on the input order
        points.sort(key=operator.itemgetter(axis, 1 - axis))
        halfway = len(points) // 2
        # get the pivot point and add the parent vertex identifier to it
        pivot = tuple(list(points[halfway]) + [parent_id])
        result.append(pivot)
        # determine the next halves
        (xmid, ymid) = pivot[0], pivot[1]
        (left, bottom) = aabb[0]
        (right, top) = aabb[1]
        leftpts = points[:halfway]
        rightpts = points[halfway+1:]
        # stack right half
        if rightpts:
            if axis == 0:
                half_aabb = [(xmid, bottom), (right, top)]
            else:
                half_aabb = [(left, ymid), (right, top)]
            stack.append(
                (rightpts, len(result) - 1, half_aabb)
            )
        # stack left half
        if leftpts:
            if axis == 0:
                half_aabb = [(left, bottom), (xmid, top)]
            else:
                half_aabb = [(left, bottom), (right, ymid)]
            stack.append(
                (leftpts, len(result) - 1, half_aabb)
            )
    return result


class KDOrderPointInserter(object):
    """Class to insert points into a Triangulation.

    It is ensured that the triangles that are made, are obeying the Delaunay
    criterion: all triangles in conflict with a new point (the cavity)
    are removed and the hole is filled with a fan of triangles around the
    new point (Bowyer-Watson algorithm). The cavity never extends over
    a constrained edge, hence this also works for a constrained
    triangulation.
    """

    __slots__ = ('triangulation', 'visits', 'inserts', 'last')

    def __init__(self, triangulation):
        self.triangulation = triangulation
        self.visits = 0
        self.inserts = 0
        self.last = None

    def insert(self, points):
        """Insert a list of points (in kD-order, as given by kdsort) into
        the triangulation.

        Every point is a tuple (x, y, vertex id, parent), the vertices
        should already be present in triangulation.vertices.
        """
        used = self.initialize(points)
        tds = self.triangulation
        for j, pt in enumerate(points):
            vid = pt[2]
            if vid in used:
                continue
            parent = pt[3]
            ini = None
            if parent is not None:
                ini = tds.incident[points[parent][2]]
            if ini is None:
                ini = self.last
            self.append(vid, ini)
            if (j % 10000) == 0:
                logging.debug(" - inserted {} points".format(j))

    def initialize(self, points):
        """Make the first triangle (from the first three points that are
        not collinear), closed by three ghost triangles.

        Returns the ids of the vertices that were used.
        """
        tds = self.triangulation
        if len(points) < 3:
            raise DegenerateGeometry("At least 3 points are needed")
        p0, p1 = points[0], points[1]
        ori = 0.0
        for pk in points[2:]:
            ori = orient2d(p0, p1, pk)
            if ori != 0:
                break
        if ori == 0:
            raise DegenerateGeometry(
                "All points are collinear, no triangle can be formed")
        a, b, c = p0[2], p1[2], pk[2]
        if ori < 0:
            a, b = b, a
        large = tds.new_triangle(a, b, c)
        hat = [tds.new_triangle(b, a, GHOST),
               tds.new_triangle(c, b, GHOST),
               tds.new_triangle(a, c, GHOST)]
        hat0, hat1, hat2 = hat
        tds.link(large, 2, hat0, 2)
        tds.link(large, 0, hat1, 2)
        tds.link(large, 1, hat2, 2)

        tds.link(hat0, 1, hat1, 0)
        tds.link(hat1, 1, hat2, 0)
        tds.link(hat2, 1, hat0, 0)
        for v in (a, b, c):
            tds.incident[v] = large
        self.last = large
        self.inserts += 3
        return set([a, b, c])

    def locate(self, p, ini=None):
        """Gets the triangle on which point p is located (a ghost triangle
        if p lies outside the convex hull)"""
        if ini is None or self.triangulation.triangles[ini] is None:
            ini = self.last
        if ini is None or self.triangulation.triangles[ini] is None:
            ini = self.triangulation.alive()[0]
        return self.visibility_walk(ini, p)

    def append(self, v, ini=None):
        """Appends vertex v (already in the vertices list) to the
        triangulation.

        If the point lies on a constrained edge, that edge is split.
        Returns the new triangles.
        """
        tds = self.triangulation
        p = tds.vertices[v]
        t0 = self.locate(p, ini)
        tri = tds.triangles[t0]
        if tri.is_finite:
            # point on a constrained edge of the triangle found?
            for side in range(3):
                if tri.constrained[side]:
                    a, b = tds.segment(t0, side)
                    if orient2d(tds.vertices[a], tds.vertices[b], p) == 0:
                        return self.split(v, a, b)
        cavity, boundary = self.cavity([t0], p)
        if len(cavity) == 1 and tri.is_finite and \
                all(orient2d(tds.vertices[a], tds.vertices[b], p) > 0
                    for (a, b, _, _, _, _) in boundary):
            new = tds.insert_into_triangle(v, t0)
        else:
            new = self.fill(v, cavity, boundary)
        return new

    def split(self, v, a, b):
        """Insert vertex v, that lies on the constrained edge a-b, and
        replace the constrained edge by its two halves.
        """
        tds = self.triangulation
        marker = tds.segments[edge_key(a, b)]
        cavity, boundary = self.split_cavity(a, b, tds.vertices[v])
        return self.fill(v, cavity, boundary, (a, b, marker))

    def split_cavity(self, a, b, p):
        """The cavity for splitting the edge a-b with point p: the two
        triangles sharing the edge and all triangles in conflict with p
        reachable from there.
        """
        tds = self.triangulation
        edge = tds.find_edge(a, b)
        if edge is None:
            raise InternalConsistencyError(
                "No edge between {} and {} to split".format(a, b))
        seeds = [edge.triangle,
                 tds.triangles[edge.triangle].neighbours[edge.side]]
        return self.cavity(seeds, p)

    def cavity(self, seeds, p):
        """Collects the triangles in conflict with p, starting from seeds,
        without crossing constrained edges. The seeds are always part of
        the cavity.

        Returns the set of triangles and its boundary loop
        """
        tds = self.triangulation
        cavity = set(seeds)
        stack = list(seeds)
        while stack:
            t = stack.pop()
            tri = tds.triangles[t]
            for side in range(3):
                n = tri.neighbours[side]
                if n in cavity or tri.constrained[side]:
                    continue
                if tds.in_conflict(n, p):
                    cavity.add(n)
                    stack.append(n)
        return cavity, tds.cavity_boundary(cavity)

    def blocked(self, boundary, p):
        """Returns the boundary items of a cavity that can not be connected
        to p (p lies on or behind their edge)"""
        vs = self.triangulation.vertices
        return [item for item in boundary
                if item[0] != GHOST and item[1] != GHOST and
                orient2d(vs[item[0]], vs[item[1]], p) <= 0]

    def fill(self, v, cavity, boundary, split=None):
        """Removes the cavity triangles and makes a fan around v"""
        tds = self.triangulation
        for t in cavity:
            tds.free_triangle(t)
        new = tds.retriangulate_cavity(boundary, v, split)
        self.last = new[0]
        self.inserts += 1
        return new

    def visibility_walk(self, ini, p):
        """Walk from triangle ini to triangle containing p

        Note, because this walk can cycle for a non-Delaunay triangulation
        we pick a random edge to continue the walk
        (this is a remembering stochastic walk, see RR-4120.pdf,
        Technical report from HAL-Inria by
        Olivier Devillers, Sylvain Pion, Monique Teillaud.
        Walking in a triangulation,
        https://hal.inria.fr/inria-00072509)

        If p lies outside the convex hull, the walk ends in the ghost
        triangle of the hull edge that p is behind.
        """
        tds = self.triangulation
        vs = tds.vertices
        t = ini
        previous = None
        if not tds.triangles[t].is_finite:
            t = tds.triangles[t].neighbours[2]
        n = len(tds.triangles)
        for ct in range(4 * n + 16):
            tri = tds.triangles[t]
            if not tri.is_finite:
                self.visits += ct
                return t
            # get random side to continue walk, this way the walk cannot get
            # stuck by always picking triangles in the same order
            # (and get stuck in a cycle in case of non-Delaunay triangulation)
            e = tds.random.randint(0, 2)
            for _ in range(3):
                if tri.neighbours[e] != previous and \
                    orient2d(vs[tri.vertices[ccw(e)]],
                             vs[tri.vertices[cw(e)]],
                             p) < 0:
                    previous = t
                    t = tri.neighbours[e]
                    break
                e = ccw(e)
            else:
                self.visits += ct
                return t
        raise InternalConsistencyError(
            "Walk towards {} did not terminate".format(p))

    def straight_walk(self, t, p):
        """Walk along the line from the centroid of triangle t towards p.

        Returns (triangle, None) when the triangle containing p is reached,
        or (triangle, side) when the side of the triangle is constrained
        (or on the convex hull) and blocks the way to p.
        """
        tds = self.triangulation
        vs = tds.vertices
        a, b, c = tds.points(t)
        o = ((a.x + b.x + c.x) / 3.0, (a.y + b.y + c.y) / 3.0)
        previous = None
        for _ in range(len(tds.triangles) + 1):
            tri = tds.triangles[t]
            for side in range(3):
                if tri.neighbours[side] == previous:
                    continue
                u = vs[tri.vertices[ccw(side)]]
                w = vs[tri.vertices[cw(side)]]
                # p behind this side and the line o -> p through it
                if orient2d(u, w, p) < 0 and \
                        orient2d(o, p, u) <= 0 <= orient2d(o, p, w):
                    break
            else:
                return t, None
            n = tri.neighbours[side]
            if tri.constrained[side] or not tds.triangles[n].is_finite:
                return t, side
            previous = t
            t = n
        raise InternalConsistencyError(
            "Straight walk towards {} did not terminate".format(p))


def triangulate(pts, segments=None, markers=None, seed=0):
    """Triangulate a set of points

    segments is a list of (start index, end index, marker) of the edges
    that should be present in the result (constraints), markers gives the
    boundary marker per point.
    """
    start = time.perf_counter()
    dt = Triangulation(seed)
    for i, pt in enumerate(pts):
        dt.add_vertex(pt[0], pt[1], markers[i] if markers else NONE)
    sorted_pts = kdsort(decorate(pts))
    end = time.perf_counter()
    logging.debug("Sorting points: " + str(end - start) + " secs")

    start = time.perf_counter()
    incremental = KDOrderPointInserter(dt)
    incremental.insert(sorted_pts)
    end = time.perf_counter()

    logging.debug("Triangulating took: " + str(end - start) + " secs")
    logging.debug("{} triangles".format(len(dt.triangles) - len(dt.free)))
    logging.debug("{} vertices".format(len(dt.vertices)))
    logging.debug("{} visits".format(incremental.visits))
    if len(dt.vertices) > 0:
        logging.debug(str(float(incremental.visits) /
                          len(dt.vertices)) + " visits per insert")

    if segments:
        start = time.perf_counter()
        logging.debug("inserting " + str(len(segments)) + " constraints")
        constraints = ConstraintInserter(dt)
        constraints.insert(segments)
        end = time.perf_counter()
        logging.debug(" {time} secs".format(time=(end-start)))
        logging.debug(" {triangle_count} triangles".format(
            triangle_count=len(dt.triangles) - len(dt.free)))
        # Keep FiniteEdgeIterator as iterator (do not read it to memory)
        edge_it = FiniteEdgeIterator(dt, constraints_only=True)
        constraint_ct = sum(1 for _ in edge_it)
        logging.debug(" {count} constraints".format(count=constraint_ct))
    return dt
