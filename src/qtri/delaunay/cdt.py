'''
Constrained Delaunay triangulation: insertion of segments and the
classification of the triangles fenced off by them
'''
import logging

from qtri.delaunay.preds import orient2d, incircle
from qtri.delaunay.iter import RegionatedTriangleIterator
from qtri.delaunay.tds import Edge, GHOST, SEGMENT, ccw, edge_key
from qtri.errors import InvalidInput, InternalConsistencyError

# -----------------------------------------------------------------------------
# Constraints
#     The algorithm is described in:
#         Fast Segment Insertion and
#         Incremental Construction of Constrained Delaunay Triangulations
#         Jonathan Richard Shewchuk and Brielin C. Brown
#
#     Available from:
#         http://www.cs.berkeley.edu/~jrs/papers/inccdt.pdf
#
# @article{Shewchuk2015,
#   doi = {10.1016/j.comgeo.2015.04.006},
#   url = {https://doi.org/10.1016/j.comgeo.2015.04.006},
#   year = {2015},
#   month = sep,
#   publisher = {Elsevier {BV}},
#   volume = {48},
#   number = {8},
#   pages = {554--574},
#   author = {Jonathan Richard Shewchuk and Brielin C. Brown},
#   title = {Fast segment insertion and incremental construction of constrained Delaunay triangulations},
#   journal = {Computational Geometry}
# }


class VertexCollision(Exception):
    """The segment being inserted runs through an existing vertex"""

    def __init__(self, vertex):
        Exception.__init__(self, "Segment runs through vertex {}".format(vertex))
        self.vertex = vertex


def triangle_overlaps_ray(triangulation, vertex, towards):
    """Returns the Edge (in the star of vertex) of the triangle that
    overlaps the ray from vertex to towards.
    In case there are multiple candidates,
    then the triangle with the right
    leg overlapping the ray is returned.
    """
    vs = triangulation.vertices
    P, T = vs[vertex], vs[towards]
    candidates = []
    for edge in triangulation.star(vertex):
        if not triangulation.triangles[edge.triangle].is_finite:
            continue
        start, end = triangulation.segment(edge.triangle, edge.side)
        # start: turns ccw
        # end: turns cw
        ostart = orient2d(vs[start], T, P)
        oend = orient2d(vs[end], T, P)
        if ostart >= 0 and oend <= 0:
            candidates.append((edge, ostart, oend))
    # the default, exactly one candidate
    if len(candidates) == 1:
        return candidates[0][0]
    # no candidates found, towards lies outside the triangulated area
    elif len(candidates) == 0:
        raise InternalConsistencyError(
            "No triangle around {} overlaps the ray to {}".format(
                vertex, towards))
    # the ray overlaps the legs of multiple triangles
    # only return the triangle for which the right leg overlaps with the ray
    else:
        found = [edge for (edge, ostart, oend) in candidates if ostart == 0]
        if len(found) != 1:
            raise InternalConsistencyError(
                "Incorrect number of triangles found around {}".format(vertex))
        return found[0]


def mark_cavity(triangulation, P, Q, triangles):
    """Returns two lists: Edges above and below the list of triangles.
    These lists are sorted clockwise around the triangles
    (this is needed for CavityCDT).

    The Edges refer to the triangles outside the cavity.
    """
    # From a list of triangles make two lists of edges:
    # above and below...
    # It is made sure that the edges that are put
    # here are forming a polyline
    # that runs *clockwise* around the cavity
    assert len(triangles) > 1
    vs = triangulation.vertices
    p, q = vs[P], vs[Q]
    above = []
    below = []
    # precondition here is that triangles their legs
    # do NOT overlap with the segment that goes
    # from P -> Q
    # thus: left and right orientation cannot both be 0
    for t in triangles:
        tri = triangulation.triangles[t]
        for side in range(3):
            R, L = triangulation.segment(t, side)
            left = orient2d(vs[L], q, p)
            right = orient2d(vs[R], q, p)
            # in case both are 0 ... not allowed
            if left == 0 and right == 0:
                raise InternalConsistencyError(
                    "Overlapping triangle leg found, not allowed")
            n = tri.neighbours[side]
            e = Edge(n, triangulation.triangles[n].neighbours.index(t))
            if left >= 0 and right >= 0:
                below.append(e)
            elif right <= 0 and left <= 0:
                above.append(e)
    below.reverse()
    return above, below


def straight_walk(triangulation, P, Q):
    """Obtain the list of triangles that overlap
    the line segment that goes from vertex P to Q.

    Raises VertexCollision when another vertex lies on the segment and
    InvalidInput when a constrained edge is crossed in the interior of
    the line segment.
    """
    vs = triangulation.vertices
    p, q = vs[P], vs[Q]
    edge = triangle_overlaps_ray(triangulation, P, Q)
    t = edge.triangle
    side = edge.side
    R, L = triangulation.segment(t, side)
    out = [t]
    if Q in triangulation.triangles[t].vertices:
        # we do not need to go into walking mode if we found
        # the exact triangle with the end point already
        return out

    # from end via right to left makes right turn (negative)
    # if line is collinear with end point then orientation becomes 0
    while orient2d(q, vs[R], vs[L]) < 0.:
        # check if we do not prematurely have a orientation of 0
        # at either side, which means that we collide a vertex
        if L != Q and orient2d(vs[L], p, q) == 0:
            raise VertexCollision(L)
        if R != Q and orient2d(vs[R], p, q) == 0:
            raise VertexCollision(R)
        tri = triangulation.triangles[t]
        if tri.constrained[side]:
            raise InvalidInput(
                "Segment {} -> {} crosses constrained segment {} -> {}".format(
                    p, q, vs[R], vs[L]))
        t = tri.neighbours[side]
        out.append(t)

        tri = triangulation.triangles[t]
        side = tri.vertices.index(R)
        S = tri.vertices[ccw(side)]
        ori = orient2d(vs[S], q, p)
        if ori < 0:
            L = S
            side = ccw(side+1)
        else:
            R = S
        if L != Q and orient2d(vs[L], p, q) == 0:
            raise VertexCollision(L)
        if R != Q and orient2d(vs[R], p, q) == 0:
            raise VertexCollision(R)
    return out


def permute(a, b, c):
    """Permutation of the triangle vertex indices from lowest to highest,
    i.e. a < b < c

    This order makes sure that a triangle is always addressed in the same way

    Used in CavityCDT.
    """
    return tuple(sorted([a, b, c]))


class ConstraintInserter(object):
    """Constraint Inserter

    Insert segments into a Delaunay Triangulation.
    """

    def __init__(self, triangulation):
        self.dt = triangulation

    def insert(self, segments):
        """Insert constraints into dt

        Parameter: segments - list of 2-tuples (or 3-tuples, with a marker),
        with vertex ids
        """
        for j, segment in enumerate(segments):
            marker = segment[2] if len(segment) > 2 else SEGMENT
            self.insert_constraint(segment[0], segment[1], marker)
            if (j % 10000) == 0:
                logging.debug(" - inserted {} constraints".format(j))

    def insert_constraint(self, P, Q, marker=SEGMENT):
        """Insert constraint into dt.

        A segment that runs through vertices of the triangulation is
        inserted as a chain of constrained edges.
        """
        todo = [(P, Q)]
        while todo:
            P, Q = todo.pop()
            logging.debug(" constraint {} -> {}".format(P, Q))
            if P == Q:
                logging.warning("Equal points found while inserting "
                                "constraint: {} -- skipped insertion".format(P))
                continue
            edge = self.dt.find_edge(P, Q)
            if edge is not None:
                # already present as edge, only has to be marked
                tri = self.dt.triangles[edge.triangle]
                tri.constrained[edge.side] = True
                neighbour = self.dt.triangles[tri.neighbours[edge.side]]
                neighbour.constrained[
                    neighbour.neighbours.index(edge.triangle)] = True
                self.dt.segments[edge_key(P, Q)] = marker
                continue
            try:
                cavity = straight_walk(self.dt, P, Q)
            except VertexCollision as collision:
                W = collision.vertex
                logging.debug(" constraint {} -> {} split at {}".format(
                    P, Q, W))
                todo.append((W, Q))
                todo.append((P, W))
                continue
            self._insert_cavity(P, Q, marker, cavity)

    def _insert_cavity(self, P, Q, marker, cavity):
        above, below = mark_cavity(self.dt, P, Q, cavity)
        # Re-triangulate upper half
        cavA = CavityCDT(self.dt, above)
        A = cavA.edge
        # Re-triangulate bottom half
        cavB = CavityCDT(self.dt, below)
        B = cavB.edge
        # link up the two triangles at both sides of the segment
        self.dt.link(A.triangle, A.side, B.triangle, B.side)
        # constrained edges
        self.dt.triangles[A.triangle].constrained[A.side] = True
        self.dt.triangles[B.triangle].constrained[B.side] = True
        self.dt.segments[edge_key(P, Q)] = marker
        # the triangles of the cavity are now garbage
        for t in cavity:
            self.dt.free_triangle(t)
        # vertices around the cavity point to a triangle that survives
        for t in cavA.created + cavB.created + [A.triangle, B.triangle]:
            for v in self.dt.triangles[t].vertices:
                if v != GHOST:
                    self.dt.incident[v] = t
        assert self.dt._symmetric(*(cavA.created + cavB.created))


class CavityCDT(object):
    """Class to triangulate an `evacuated' cavity adjacent to a constraint
    """

    def __init__(self,
                 triangulation,
                 cavity_edges):
        """
        dt - the triangulation data structure
        cavity_edges - the edges that bound the cavity
        in *CLOCKWISE* order
        around the cavity. Note: these edges do not include the segment
        to be inserted.
        """
        # WARNING: The ordering of vertices
        # around the cavity is important to function correctly!
        self.vertices = []
        self.created = []
        self.edge = None
        self.dt = triangulation

        # If we found exactly one cavity edge, there is no
        # area between ray and cavity polygon. Hence this edge
        # should be the one that will be linked to (after that we've
        # set the type of this edge to constrained).
        if len(cavity_edges) == 1:
            self.edge = cavity_edges[0]
            return
        self._preprocess(cavity_edges)
        self._retriangulate()
        self._push_back_triangles()

    def _preprocess(self, cavity_edges):
        """Set up data structures needed for the re-triangulate part of the
        algorithm.
        """
        self.constraints = set()
        for i, edge in enumerate(cavity_edges):
            xx, yy = self.dt.segment(edge.triangle, edge.side)
            # Both directions are needed, as this is used
            # for internal dangling edges inside the cavity,
            # which are traversed both sides.
            if self.dt.triangles[edge.triangle].constrained[edge.side]:
                self.constraints.add((xx, yy))
                self.constraints.add((yy, xx))
            if i:
                self.vertices.append(yy)
            else:
                self.vertices.extend([xx, yy])
        # Make the vertices list COUNTERCLOCKWISE here
        # The algorithm depends on this orientation!
        self.vertices.reverse()
        self.points = [self.dt.vertices[v] for v in self.vertices]
        self.surroundings = {}
        for edge in cavity_edges:
            s = self.dt.segment(edge.triangle, edge.side)
            self.surroundings[s] = edge
        # Make a "linked list" of polygon vertices
        self.next = {}
        self.prev = {}
        # Relative size of distances to the segment
        self.distance = {}
        # Adjacency: third point of a triangle by given oriented side
        self.adjacency = {}
        # Set of resulting triangles (vertex indices)
        self.triangles = set()
        # Initialization for the algorithm
        m = len(self.vertices)
        # Make random permutation of point indices
        self.pi = list(range(1, m - 1))
        # Randomize processing order
        self.dt.random.shuffle(self.pi)
        # Link all vertices in a circular list that
        # describes the polygon outline of the cavity
        for i in range(m):
            self.next[i] = (i + 1) % m
            self.prev[i] = (i - 1) % m
            # Distance to the segment from [0-m]
            self.distance[i] = orient2d(self.points[0],
                                        self.points[i],
                                        self.points[m-1])

    def _retriangulate(self):
        """Re-triangulate the cavity, the result is a collection of
        triangles that can be pushed back into the original DT data
        structure that replaces the old triangles inside the cavity.
        """
        # Now determine how to `remove' vertices
        # from the outline in random order
        #
        # Go over pi from back to start; quit at *second* item in pi
        # This determines order of removal of vertices from
        # the cavity outline polygon
        m = len(self.vertices)
        for i in range(len(self.pi) - 1, 0, -1):
            while self.distance[self.pi[i]] < \
                        self.distance[self.prev[self.pi[i]]] and \
                        self.distance[self.pi[i]] < \
                        self.distance[self.next[self.pi[i]]]:
                j = self.dt.random.randint(0, i)
                self.pi[i], self.pi[j] = self.pi[j], self.pi[i]
            # take a vertex out of the circular list
            self.next[self.prev[self.pi[i]]] = self.next[self.pi[i]]
            self.prev[self.next[self.pi[i]]] = self.prev[self.pi[i]]
        # add an initial triangle
        self._add_triangle(0, self.pi[0], m-1)
        # Work through the settled order of vertex additions
        # Now in forward direction, keep adding points until all points
        # are added to the dt of this part of the cavity
        for i in range(1, len(self.pi)):
            a = self.pi[i]
            b, c = self.next[a], self.prev[a]
            self._insert_vertex(a, b, c)

    def _push_back_triangles(self):
        """Make new triangles that are inserted in the data structure
        and that are linked up properly with each other and the surroundings.
        """
        dt = self.dt
        # First make new triangles
        newtris = {}
        for three in self.triangles:
            a, b, c, = three
            t = dt.new_triangle(self.vertices[a],
                                self.vertices[b],
                                self.vertices[c])
            assert orient2d(*dt.points(t)) > 0
            # Index triangle by sorted vertex ids
            newtris[permute(*dt.triangles[t].vertices)] = t
            self.created.append(t)
        # Translate adjacency table to vertex ids
        # Note that vertices that are used twice (because of dangling edge
        # in the cavity) will get the same identifier again
        # (while previously they would have different positions).
        adj = {}
        for (f, t), v in self.adjacency.items():
            adj[self.vertices[f], self.vertices[t]] = self.vertices[v]
        # Link all the 3 sides of the new triangles properly
        for T in newtris.values():
            for i in range(3):
                segment = dt.segment(T, i)
                side = (segment[1], segment[0])
                constrained = False
                # The side is adjacent to another new triangle
                # In case this is a dangling segment we constrain the segment
                if side in adj:
                    neighbour = newtris[permute(side[0], side[1], adj[side])]
                    if side in self.constraints:
                        constrained = True
                # the side is adjacent to an exterior triangle
                # that lies outside the cavity and will
                # remain after the re-dt
                # therefore also change the neighbour of this triangle
                elif side in self.surroundings:
                    neighbour_side = self.surroundings[side].side
                    neighbour = self.surroundings[side].triangle
                    dt.triangles[neighbour].neighbours[neighbour_side] = T
                    constrained = \
                        dt.triangles[neighbour].constrained[neighbour_side]
                # the triangle is the bottom of the evacuated cavity
                # hence it should be linked later to the other
                # re-dt of the cavity
                else:
                    if self.edge is not None:
                        raise InternalConsistencyError(
                            "Cavity has more than one open side")
                    neighbour = None
                    self.edge = Edge(T, i)
                dt.triangles[T].neighbours[i] = neighbour
                dt.triangles[T].constrained[i] = constrained
        assert self.edge is not None

    def _insert_vertex(self, u, v, w):
        """Insert a vertex to the triangulated area,
        while keeping the area of the current polygon triangulated
        """
        x = -1
        # Find third vertex in the triangle that has edge (w, v)
        if (w, v) in self.adjacency:
            x = self.adjacency[(w, v)]
        # See if we have to remove some triangle(s) already there,
        # or that we can add just a new one
        if x != -1 and \
            (orient2d(self.points[u],
                      self.points[v],
                      self.points[w]) <= 0 or
             incircle(self.points[u],
                      self.points[v],
                      self.points[w],
                      self.points[x]) > 0):
            # Remove triangle (w,v,x), also from adjacency dict
            self.triangles.remove(permute(w, v, x))
            del self.adjacency[(w, v)]
            del self.adjacency[(v, x)]
            del self.adjacency[(x, w)]
            # Recurse
            self._insert_vertex(u, v, x)
            self._insert_vertex(u, x, w)
        else:
            # Add a triangle (this triangle could be removed later)
            self._add_triangle(u, v, w)

    def _add_triangle(self, a, b, c):
        """Add a triangle to the temporary set of triangles

        It is not said that a triangle that is added,
        survives until the end of the algorithm
        """
        t = permute(a, b, c)
        P = {}
        P[(a, b)] = c
        P[(b, c)] = a
        P[(c, a)] = b
        # .update() overwrites existing keys
        # (but these should not exist anyway)
        self.adjacency.update(P)
        # A triangle is stored with vertices in ordered indices
        self.triangles.add(t)


def mark_excluded(triangulation):
    """Tags the triangles outside the domain that is bounded by the
    constraints (the exterior and the holes) as excluded.

    The regions fenced off by constraints are visited from the outside
    inwards, every region at even depth is excluded.
    Returns the number of finite triangles that are kept.
    """
    kept = 0
    for group, depth, t in RegionatedTriangleIterator(triangulation):
        tri = triangulation.triangles[t]
        tri.excluded = depth % 2 == 0
        if tri.is_finite and not tri.excluded:
            kept += 1
    logging.debug(" {} triangles kept inside the boundaries".format(kept))
    return kept
