'''
Quality refinement of a (constrained) Delaunay triangulation by inserting
Steiner points, following:

    Jim Ruppert, A Delaunay Refinement Algorithm for Quality 2-Dimensional
    Mesh Generation, Journal of Algorithms 18(3), 548--585, 1995.

Constrained edges that are encroached are split at their midpoint, triangles
that are too skinny (or too large) get a vertex at their circumcenter.
'''
import heapq
import logging
import time
from collections import deque, namedtuple
from itertools import count
from math import isfinite

from qtri.delaunay.insert_kd import KDOrderPointInserter
from qtri.delaunay.preds import area, angles, circumcenter, encroaches, \
    midpoint, nearly_collinear
from qtri.delaunay.tds import HULL, NONE, SEGMENT, ccw, cw, edge_key

# largest minimum angle (degrees) that can be asked for
MAX_MIN_ANGLE = 34.0
# maximum number of Steiner points added by one refinement
DEFAULT_MAX_STEINER = 10000

BadTriangle = namedtuple('BadTriangle', 'vertices centroid min_angle area')


class RefinementReport(object):
    """Outcome of a refinement run"""

    def __init__(self, steiner_count=0, budget_exhausted=False,
                 residual=None, skipped=0):
        self.steiner_count = steiner_count
        self.budget_exhausted = budget_exhausted
        # BadTriangle records for the triangles that are still bad
        self.residual = residual if residual is not None else []
        # bad triangles that can not be improved (small input angle, or
        # flat between two pieces of a split segment)
        self.skipped = skipped

    @property
    def conforming(self):
        return not self.budget_exhausted and len(self.residual) == 0

    def __repr__(self):
        return ("RefinementReport(steiner_count={0.steiner_count}, "
                "budget_exhausted={0.budget_exhausted}, "
                "residual={1}, skipped={0.skipped})").format(
                    self, len(self.residual))


class Refiner(object):
    """Refines a triangulation until no constrained edge is encroached and
    no kept triangle is bad, or the Steiner budget is used up.
    """

    def __init__(self, triangulation, min_angle, max_area=None,
                 max_steiner=DEFAULT_MAX_STEINER):
        self.dt = triangulation
        self.inserter = KDOrderPointInserter(triangulation)
        self.min_angle = min_angle
        self.max_area = max_area
        self.max_steiner = max_steiner
        self.segment_queue = deque()
        self.triangle_queue = []
        self.sequence = count()
        self.steiner_count = 0
        self.rollbacks = 0
        self.budget_exhausted = False
        self.unsplittable = set()

    # -- classification
    def quality(self, t):
        """Returns (smallest angle, position of that angle, area) of a kept
        triangle, None for ghost and excluded triangles"""
        tri = self.dt.triangles[t]
        if tri is None or not tri.is_finite or tri.excluded:
            return None
        a, b, c = self.dt.points(t)
        angs = angles(a, b, c)
        smallest = min(angs)
        return smallest, angs.index(smallest), area(a, b, c)

    def is_bad(self, t):
        q = self.quality(t)
        if q is None:
            return False
        smallest, _, size = q
        return smallest < self.min_angle or \
            (self.max_area is not None and size > self.max_area)

    def is_unimprovable(self, t):
        """Is the smallest angle of the triangle formed by two constrained
        edges, or are two of its sides pieces of one split segment that
        bend only by rounding (and is the triangle not too large)?"""
        smallest, pos, size = self.quality(t)
        if self.max_area is not None and size > self.max_area:
            return False
        tri = self.dt.triangles[t]
        if tri.constrained[ccw(pos)] and tri.constrained[cw(pos)]:
            return True
        vs = self.dt.vertices
        v = tri.vertices
        for k in range(3):
            if tri.constrained[ccw(k)] and tri.constrained[cw(k)]:
                return nearly_collinear(vs[v[ccw(k)]], vs[v[k]],
                                        vs[v[cw(k)]])
        return False

    def encroached(self, a, b):
        """Is the constrained edge a-b encroached by the apex of one of its
        kept adjacent triangles?"""
        edge = self.dt.find_edge(a, b)
        if edge is None:
            return False
        vs = self.dt.vertices
        t = edge.triangle
        n = self.dt.triangles[t].neighbours[edge.side]
        for tri, side in ((t, edge.side),
                          (n, self.dt.triangles[n].neighbours.index(t))):
            T = self.dt.triangles[tri]
            if not T.is_finite or T.excluded:
                continue
            if encroaches(vs[a], vs[b], vs[T.vertices[side]]):
                return True
        return False

    # -- queues
    def push_triangles(self, triangles):
        for t in triangles:
            T = self.dt.triangles[t]
            if T is None or not T.is_finite:
                continue
            for side in range(3):
                if T.constrained[side]:
                    self.segment_queue.append(self.dt.segment(t, side))
            if self.is_bad(t):
                smallest = self.quality(t)[0]
                heapq.heappush(self.triangle_queue,
                               (smallest, next(self.sequence), t,
                                tuple(T.vertices)))

    def protect_hull(self):
        """Mark the convex hull edges as constrained, so that no Steiner
        point ends up outside of the convex hull"""
        for a, b in self.dt.hull_edges():
            edge = self.dt.find_edge(a, b)
            tri = self.dt.triangles[edge.triangle]
            tri.constrained[edge.side] = True
            ghost = self.dt.triangles[tri.neighbours[edge.side]]
            ghost.constrained[ghost.neighbours.index(edge.triangle)] = True
            self.dt.segments[edge_key(a, b)] = HULL
            for v in (a, b):
                if self.dt.vertices[v].marker == NONE:
                    self.dt.vertices[v].marker = SEGMENT
        logging.debug(" protected {} convex hull edges".format(
            len(self.dt.segments)))

    # -- main loop
    def run(self):
        if not self.dt.segments:
            self.protect_hull()
        for (a, b) in sorted(self.dt.segments):
            self.segment_queue.append((a, b))
        self.push_triangles(self.dt.alive())
        while not self.budget_exhausted:
            if self.segment_queue:
                a, b = self.segment_queue.popleft()
                key = edge_key(a, b)
                if key in self.unsplittable or key not in self.dt.segments:
                    continue
                if self.encroached(a, b):
                    self.split_segment(a, b)
            elif self.triangle_queue:
                _, _, t, vertices = heapq.heappop(self.triangle_queue)
                T = self.dt.triangles[t]
                # the triangle can have been removed (or its slot reused)
                if T is None or tuple(T.vertices) != vertices:
                    continue
                if not self.is_bad(t) or self.is_unimprovable(t):
                    continue
                self.split_triangle(t)
            else:
                break
        return self.report()

    def _room(self):
        if self.steiner_count >= self.max_steiner:
            self.budget_exhausted = True
            return False
        return True

    def split_segment(self, a, b):
        """Split the constrained edge a-b at its midpoint.

        Returns True if the edge was split."""
        vs = self.dt.vertices
        key = edge_key(a, b)
        if key not in self.dt.segments or key in self.unsplittable:
            return False
        mid = midpoint(vs[a], vs[b])
        if self.dt.find_vertex(mid[0], mid[1]) is not None:
            # segment too short to split in floating point
            logging.debug(" segment {} can not be split".format(key))
            self.unsplittable.add(key)
            return False
        cavity, boundary = self.inserter.split_cavity(a, b, mid)
        if self.inserter.blocked(boundary, mid):
            logging.debug(" midpoint of {} is not visible".format(key))
            self.unsplittable.add(key)
            return False
        if not self._room():
            return False
        marker = self.dt.segments[key]
        v = self.dt.add_vertex(mid[0], mid[1],
                               SEGMENT if marker == HULL else marker,
                               steiner=True).id
        new = self.inserter.fill(v, cavity, boundary, (a, b, marker))
        self.steiner_count += 1
        self.push_triangles(new)
        return True

    def split_triangle(self, t):
        """Insert the circumcenter of the bad triangle t, or split the
        constrained edges that the circumcenter encroaches upon"""
        vs = self.dt.vertices
        center = circumcenter(*self.dt.points(t))
        if not (isfinite(center[0]) and isfinite(center[1])) or \
                self.dt.find_vertex(center[0], center[1]) is not None:
            return
        located, side = self.inserter.straight_walk(t, center)
        if side is not None:
            # the way to the circumcenter is blocked by a constrained edge
            a, b = self.dt.segment(located, side)
            if self.split_segment(a, b):
                self.push_triangles([t])
            return
        cavity, boundary = self.inserter.cavity([located], center)
        blocked = self.inserter.blocked(boundary, center)
        if blocked:
            # circumcenter on a constrained edge
            split = [self.split_segment(a, b)
                     for (a, b, _, _, constrained, _) in blocked
                     if constrained]
            if any(split):
                self.push_triangles([t])
            return
        if not self._room():
            return
        v = self.dt.add_vertex(center[0], center[1], NONE, steiner=True).id
        new = self.inserter.fill(v, cavity, boundary)
        encroached = []
        for edge in self.dt.star(v):
            tri = self.dt.triangles[edge.triangle]
            if tri.constrained[edge.side]:
                a, b = self.dt.segment(edge.triangle, edge.side)
                if encroaches(vs[a], vs[b], vs[v]):
                    encroached.append((a, b))
        if encroached:
            # undo, the segments are split instead
            self.rollbacks += 1
            restored = self.dt.remove_vertex(v)
            split = [self.split_segment(a, b) for a, b in encroached]
            if any(split):
                self.push_triangles(restored)
            return
        self.steiner_count += 1
        self.push_triangles(new)

    def report(self):
        residual = []
        skipped = 0
        for t in self.dt.alive():
            if not self.is_bad(t):
                continue
            if self.is_unimprovable(t):
                skipped += 1
                continue
            a, b, c = self.dt.points(t)
            smallest, _, size = self.quality(t)
            residual.append(BadTriangle(
                tuple(self.dt.triangles[t].vertices),
                ((a.x + b.x + c.x) / 3.0, (a.y + b.y + c.y) / 3.0),
                smallest, size))
        return RefinementReport(self.steiner_count, self.budget_exhausted,
                                residual, skipped)


def refine(triangulation, min_angle, max_area=None,
           max_steiner=DEFAULT_MAX_STEINER):
    """Refine the triangulation in place, returns a RefinementReport"""
    start = time.perf_counter()
    refiner = Refiner(triangulation, min_angle, max_area, max_steiner)
    report = refiner.run()
    end = time.perf_counter()
    logging.debug("Refining took: " + str(end - start) + " secs")
    logging.debug("{} Steiner points".format(report.steiner_count))
    logging.debug("{} rollbacks, {} flips".format(refiner.rollbacks,
                                                  triangulation.flips))
    if report.budget_exhausted:
        logging.warning(
            "Steiner point budget of {} exhausted, {} bad triangles "
            "left".format(max_steiner, len(report.residual)))
    return report
