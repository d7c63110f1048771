'''
Triangulation data structure

All triangles and vertices are owned by a Triangulation and refer to each
other by their index in its lists (vertex id / triangle index). Slots of
removed triangles are recycled.

The convex hull is closed with ghost triangles: triangles that have the
symbolic vertex GHOST at position 2 and share a convex hull edge with a
real triangle. Hence, every real triangle always has three neighbours.
'''
from random import Random

from qtri.delaunay.preds import orient2d, incircle
from qtri.errors import InvalidInput, InternalConsistencyError, TopologyError

# symbolic vertex at infinity
GHOST = -1

# boundary markers, for vertices and constrained edges
NONE = 0
SEGMENT = 1
HOLE = 2
HULL = 3


# -- helper functions, could be inlined in Cythonized version
def box(points):
    """Obtain a tight fitting axis-aligned box around point set"""
    xmin = min(points, key=lambda x: x[0])[0]
    ymin = min(points, key=lambda x: x[1])[1]
    xmax = max(points, key=lambda x: x[0])[0]
    ymax = max(points, key=lambda x: x[1])[1]
    return (xmin, ymin), (xmax, ymax)


def ccw(i):
    """Get index (0, 1 or 2) increased with one (ccw)"""
    return (i + 1) % 3


def cw(i):
    """Get index (0, 1 or 2) decreased with one (cw)"""
    return (i - 1) % 3


def apex(side):
    """Given a side, give the apex of the triangle """
    return side % 3


def orig(side):
    """Given a side, give the origin of the triangle """
    return (side + 1) % 3  # ccw(side)


def dest(side):
    """Given a side, give the destination of the triangle """
    return (side - 1) % 3  # cw(side)


def edge_key(a, b):
    """Key of the unordered edge between vertex a and b"""
    return (a, b) if a < b else (b, a)


class Vertex(object):
    """A vertex in the triangulation.

    Coordinates do not change once the vertex is made.
    """
    __slots__ = ('x', 'y', 'id', 'marker', 'steiner')

    def __init__(self, x, y, id, marker=NONE, steiner=False):
        self.x = x
        self.y = y
        self.id = id
        self.marker = marker
        self.steiner = steiner

    def __str__(self):
        return "{0} {1}".format(self.x, self.y)

    def __repr__(self):
        return "Vertex({0}, {1}, id={2})".format(self.x, self.y, self.id)

    def __getitem__(self, i):
        if i == 0:
            return self.x
        elif i == 1:
            return self.y
        else:
            raise IndexError("No such ordinate: {}".format(i))

    def __len__(self):
        return 2


class Triangle(object):
    """Triangle for which its vertices should be oriented CCW

    Side i is the edge opposite of vertex i, neighbours[i] is the triangle
    on the other side of that edge and constrained[i] tells whether it
    is a constrained edge.
    """

    __slots__ = ('vertices', 'neighbours', 'constrained', 'excluded')

    def __init__(self, a, b, c, excluded=False):
        self.vertices = [a, b, c]  # orig, dest, apex -- ccw
        self.neighbours = [None] * 3
        self.constrained = [False] * 3
        self.excluded = excluded

    def __str__(self):
        return "Triangle({0[0]}, {0[1]}, {0[2]})".format(self.vertices)

    @property
    def is_finite(self):
        return GHOST not in self.vertices

    def normalize(self):
        """Rotate the ghost vertex (if any) to position 2"""
        if self.vertices[2] == GHOST or GHOST not in self.vertices:
            return
        k = ccw(self.vertices.index(GHOST))
        self.vertices = self.vertices[k:] + self.vertices[:k]
        self.neighbours = self.neighbours[k:] + self.neighbours[:k]
        self.constrained = self.constrained[k:] + self.constrained[:k]


class Edge(object):
    """An edge is a Triangle (index) and an integer [0, 1, 2] that indicates
    the side of the triangle to use as the Edge"""

    __slots__ = ('triangle', 'side')

    def __init__(self, triangle, side):
        self.triangle = triangle
        self.side = side

    def __eq__(self, other):
        return self.triangle == other.triangle and self.side == other.side

    def __hash__(self):
        return hash((self.triangle, self.side))

    def __repr__(self):
        return "Edge({0}, {1})".format(self.triangle, self.side)


class Triangulation(object):
    """Triangulation data structure (the mesh)"""

    def __init__(self, seed=0):
        self.vertices = []
        self.incident = []  # vertex id -> index of one incident triangle
        self.triangles = []
        self.free = []
        self.segments = {}  # edge_key -> marker, for all constrained edges
        self.random = Random(seed)
        self.flips = 0
        self._points_idx = {}

    # -- vertices
    def add_vertex(self, x, y, marker=NONE, steiner=False):
        """Make a new vertex; it still has to be inserted in the mesh"""
        if (x, y) in self._points_idx:
            raise InvalidInput(
                "Duplicate point found for insertion: {} {}".format(x, y))
        v = Vertex(x, y, len(self.vertices), marker, steiner)
        self._points_idx[(x, y)] = v.id
        self.vertices.append(v)
        self.incident.append(None)
        return v

    def find_vertex(self, x, y):
        return self._points_idx.get((x, y))

    def _drop_vertex(self, v):
        if v != len(self.vertices) - 1:
            raise InternalConsistencyError(
                "Vertex {} is not the last one added".format(v))
        vertex = self.vertices.pop()
        self.incident.pop()
        del self._points_idx[(vertex.x, vertex.y)]

    # -- triangles
    def new_triangle(self, a, b, c, excluded=False):
        t = Triangle(a, b, c, excluded)
        if self.free:
            idx = self.free.pop()
            self.triangles[idx] = t
        else:
            idx = len(self.triangles)
            self.triangles.append(t)
        return idx

    def free_triangle(self, idx):
        self.triangles[idx] = None
        self.free.append(idx)

    def alive(self):
        """Indices of all triangles in use (including ghost triangles)"""
        return [i for i, t in enumerate(self.triangles) if t is not None]

    def link(self, t0, side0, t1, side1):
        """Links two triangles to each other over their common side
        """
        self.triangles[t0].neighbours[side0] = t1
        self.triangles[t1].neighbours[side1] = t0

    def relink(self, t, old, new):
        """Let triangle t point to new where it pointed to old"""
        neighbours = self.triangles[t].neighbours
        neighbours[neighbours.index(old)] = new

    def segment(self, t, side):
        """The vertex ids (orig, dest) of the side of triangle t"""
        vertices = self.triangles[t].vertices
        return vertices[ccw(side)], vertices[cw(side)]

    def points(self, t):
        """The three vertex objects of a (finite) triangle"""
        vs = self.vertices
        a, b, c = self.triangles[t].vertices
        return vs[a], vs[b], vs[c]

    def star(self, v):
        """Yields Edges (triangle, side) of the triangles around vertex v,
        in counterclockwise order, where side is the position of v.
        """
        start = self.incident[v]
        if start is None:
            return
        t = start
        while True:
            tri = self.triangles[t]
            side = tri.vertices.index(v)
            yield Edge(t, side)
            t = tri.neighbours[ccw(side)]
            if t == start:
                break

    def find_edge(self, a, b):
        """Returns Edge with orig a and dest b (the triangle lies left of
        a -> b) or None if a and b are not connected.
        """
        for edge in self.star(a):
            tri = self.triangles[edge.triangle]
            if tri.vertices[ccw(edge.side)] == b:
                return Edge(edge.triangle, cw(edge.side))
        return None

    def hull_edges(self):
        """Convex hull edges as (a, b) pairs, the mesh lies left of a -> b"""
        out = []
        for t in self.triangles:
            if t is not None and not t.is_finite:
                out.append((t.vertices[1], t.vertices[0]))
        return out

    def in_conflict(self, t, p):
        """Does point p lie inside the circumcircle of triangle t

        For a ghost triangle the point conflicts if it lies strictly
        outside of its hull edge, or on the open hull edge itself.
        """
        tri = self.triangles[t]
        vs = self.vertices
        if tri.is_finite:
            a, b, c = tri.vertices
            return incircle(vs[a], vs[b], vs[c], p) > 0
        a, b = vs[tri.vertices[0]], vs[tri.vertices[1]]
        ori = orient2d(a, b, p)
        if ori > 0:
            return True
        elif ori < 0:
            return False
        # collinear: on the open segment a-b?
        return (min(a.x, b.x) <= p[0] <= max(a.x, b.x) and
                min(a.y, b.y) <= p[1] <= max(a.y, b.y) and
                (p[0], p[1]) != (a.x, a.y) and
                (p[0], p[1]) != (b.x, b.y))

    # -- edit primitives
    def flip22(self, t0, side0, convex=True):
        """Performs the flip of triangle t0 and its neighbour over side0

        If t0 and t1 are two triangles sharing a common edge BD,
        the method replaces ABD and CDB triangles by ABC and CDA, respectively.

        With convex=False the flip is also allowed when D lies on the new
        diagonal (used while dissolving the star of a vertex).

        Post-conditions:
        - t0 / t1 are rotated *ccw*
        - t0 / t1 are linked correctly within the quad (vertices/neighbouring
          triangles) and wrt each other
        - the vertices point to the correct triangle
        """
        T0 = self.triangles[t0]
        if T0.constrained[side0]:
            raise TopologyError("Constrained edge can not be flipped")
        t1 = T0.neighbours[side0]
        T1 = self.triangles[t1] if t1 is not None else None
        if T1 is None or not T0.is_finite or not T1.is_finite:
            raise TopologyError("Edge is not shared by two triangles")
        side1 = T1.neighbours.index(t0)

        apex0, orig0, dest0 = apex(side0), orig(side0), dest(side0)
        apex1, orig1, dest1 = apex(side1), orig(side1), dest(side1)

        # side0 and side1 should be same edge
        assert T0.vertices[orig0] == T1.vertices[dest1]
        assert T0.vertices[dest0] == T1.vertices[orig1]

        # -- vertices around quadrilateral in ccw order starting at apex of t0
        A, B = T0.vertices[apex0], T0.vertices[orig0]
        C, D = T1.vertices[apex1], T0.vertices[dest0]
        vs = self.vertices
        if orient2d(vs[A], vs[B], vs[C]) <= 0 or \
                orient2d(vs[C], vs[D], vs[A]) < 0 or \
                (convex and orient2d(vs[C], vs[D], vs[A]) == 0):
            raise TopologyError("Quadrilateral is not convex, can not flip")
        # -- triangles around quadrilateral in ccw order, starting at A
        AB, BC = T0.neighbours[dest0], T1.neighbours[orig1]
        CD, DA = T1.neighbours[dest1], T0.neighbours[orig0]
        cAB, cBC = T0.constrained[dest0], T1.constrained[orig1]
        cCD, cDA = T1.constrained[dest1], T0.constrained[orig0]
        # the triangles around we link to the correct triangle *after* the flip
        self.relink(BC, t1, t0)
        self.relink(DA, t0, t1)

        # -- set new vertices, neighbours and constraints
        T0.vertices = [A, B, C]
        T0.neighbours = [BC, t1, AB]
        T0.constrained = [cBC, False, cAB]
        T1.vertices = [C, D, A]
        T1.neighbours = [DA, t0, CD]
        T1.constrained = [cDA, False, cCD]
        # -- update vertex to triangle pointers
        for v in T0.vertices:
            self.incident[v] = t0
        for v in T1.vertices:
            self.incident[v] = t1
        self.flips += 1
        assert self._symmetric(t0, t1, AB, BC, CD, DA)

    def flip_edge(self, a, b):
        """Flip the (unconstrained) edge between vertex a and b"""
        edge = self.find_edge(a, b)
        if edge is None:
            raise TopologyError("No edge between {} and {}".format(a, b))
        self.flip22(edge.triangle, edge.side)
        return edge.triangle

    def insert_into_triangle(self, v, t):
        """Splits triangle t into three triangles sharing vertex v,
        that lies strictly inside t.
        """
        T0 = self.triangles[t]
        if not T0.is_finite:
            raise TopologyError("Can not split ghost triangle")
        a, b, c = T0.vertices
        t1 = self.new_triangle(b, c, v, T0.excluded)
        t2 = self.new_triangle(c, a, v, T0.excluded)
        T1, T2 = self.triangles[t1], self.triangles[t2]
        # neighbours outside triangle to insert to
        n0, n1 = T0.neighbours[0], T0.neighbours[1]
        self.relink(n0, t, t1)
        self.relink(n1, t, t2)
        T1.neighbours[2], T1.constrained[2] = n0, T0.constrained[0]
        T2.neighbours[2], T2.constrained[2] = n1, T0.constrained[1]
        T0.vertices[2] = v
        T0.constrained[0] = T0.constrained[1] = False
        # internal links
        self.link(t, 0, t1, 1)
        self.link(t1, 0, t2, 1)
        self.link(t2, 0, t, 1)
        self.incident[a] = t
        self.incident[b] = t
        self.incident[v] = t
        self.incident[c] = t1
        assert self._symmetric(t, t1, t2, n0, n1, T0.neighbours[2])
        return [t, t1, t2]

    def cavity_boundary(self, cavity):
        """Returns the edges around a set of triangles (the cavity),
        as a loop running counterclockwise around the cavity.

        Every item is a tuple:
            (orig, dest, outside triangle, its side, constrained, excluded)
        """
        entries = {}
        for t in cavity:
            tri = self.triangles[t]
            for side in range(3):
                n = tri.neighbours[side]
                if n in cavity:
                    continue
                a, b = tri.vertices[ccw(side)], tri.vertices[cw(side)]
                if a in entries:
                    raise InternalConsistencyError(
                        "Cavity is not a topological disk at {}".format(a))
                entries[a] = (a, b, n, self.triangles[n].neighbours.index(t),
                              tri.constrained[side], tri.excluded)
        start = min(entries)
        loop = []
        a = start
        while True:
            item = entries[a]
            loop.append(item)
            a = item[1]
            if a == start:
                break
            if a not in entries or len(loop) > len(entries):
                raise InternalConsistencyError("Cavity boundary is not a loop")
        if len(loop) != len(entries):
            raise InternalConsistencyError("Cavity has more than one boundary")
        return loop

    def retriangulate_cavity(self, boundary, v, split=None):
        """Fan triangulate a star-shaped cavity around the new vertex v.

        The cavity triangles should have been freed already, boundary is the
        result of cavity_boundary. If split is given, it is a 3-tuple
        (a, b, marker) of the constrained edge that v splits; the two new
        halves become constrained.

        Returns the indices of the new triangles.
        """
        fan = []
        for (a, b, outer, outer_side, constrained, excluded) in boundary:
            t = self.new_triangle(a, b, v, excluded)
            T = self.triangles[t]
            T.neighbours[2] = outer
            T.constrained[2] = constrained
            self.triangles[outer].neighbours[outer_side] = t
            fan.append(t)
        m = len(fan)
        for i in range(m):
            self.link(fan[i], 0, fan[(i + 1) % m], 1)
        if split is not None:
            sa, sb, marker = split
            for t in fan:
                T = self.triangles[t]
                if T.vertices[0] in (sa, sb):
                    T.constrained[1] = True
                if T.vertices[1] in (sa, sb):
                    T.constrained[0] = True
            del self.segments[edge_key(sa, sb)]
            self.segments[edge_key(sa, v)] = marker
            self.segments[edge_key(v, sb)] = marker
        for t in fan:
            T = self.triangles[t]
            T.normalize()
            for x in T.vertices:
                if x != GHOST:
                    self.incident[x] = t
        assert self._symmetric(*fan)
        return fan

    def remove_vertex(self, pivot):
        """Remove a vertex that is present in the triangulation,
        while keeping the triangulation Delaunay.

        Only used for rolling back the insertion of an interior vertex
        (none of the edges around it may be constrained and it may not
        be on the convex hull, and it has to be the last vertex that
        was added).

        The algorithm followed is from the paper by
        Mostafavi, Gold & Dakowicz (2003):
        Delete and insert operations in Voronoi/Delaunay methods
        and applications, Computers & Geosciences 29(4), 523--530.

        Returns the indices of the triangles that replace the star.
        """
        # -- slice ears for the polygon around the pivot that is to be removed
        # the polygon around the pivot to be removed is represented by a
        # collection of triangles, which we call the *star*
        # the vertices on this polygon are called the *link*
        star = [edge.triangle for edge in self.star(pivot)]
        for t in star:
            tri = self.triangles[t]
            side = tri.vertices.index(pivot)
            if not tri.is_finite:
                raise TopologyError("Can not remove vertex on convex hull")
            if tri.constrained[ccw(side)] or tri.constrained[cw(side)]:
                raise TopologyError("Can not remove vertex on a constraint")
        if pivot != len(self.vertices) - 1:
            raise TopologyError("Only the last added vertex can be removed")
        vs = self.vertices
        result = set(star)
        cur = 0
        stuck = 0
        while len(star) > 3:
            # take 2 triangles (going around ccw around the pivot)
            tri0 = star[cur % len(star)]
            tri1 = star[(cur + 1) % len(star)]
            T0, T1 = self.triangles[tri0], self.triangles[tri1]
            # get the vertices opposite of the pivot
            side0 = T0.vertices.index(pivot)
            v1 = T0.vertices[orig(side0)]
            v2 = T0.vertices[dest(side0)]
            side1 = T1.vertices.index(pivot)
            assert T1.vertices[orig(side1)] == v2
            v3 = T1.vertices[dest(side1)]
            # we have a potential ear to slice off
            # if (v1, v2, v3 turns left) and
            # (v1, v3, pivot turns left or is straight)
            slice_ear = False
            if orient2d(vs[v1], vs[v2], vs[v3]) > 0 and \
                    orient2d(vs[v1], vs[v3], vs[pivot]) >= 0:
                slice_ear = True
                # circumcircle through ear its points should be empty of
                # the other points in the link
                for i in range(0, len(star) - 3):
                    T3 = self.triangles[star[(cur + 3 + i) % len(star)]]
                    v4 = T3.vertices[orig(T3.vertices.index(pivot))]
                    if incircle(vs[v1], vs[v2], vs[v3], vs[v4]) > 0:
                        slice_ear = False
                        break
            if slice_ear:
                # flip22 flips CCW
                # -> tri0 is thus the sliced ear,
                #    so remove tri0 from the star
                self.flip22(tri0, T0.vertices.index(v1), convex=False)
                star.remove(tri0)
                assert pivot not in self.triangles[tri0].vertices
                assert pivot in self.triangles[tri1].vertices
                stuck = 0
            else:
                stuck += 1
                if stuck > len(star):
                    raise InternalConsistencyError(
                        "No ear found while removing vertex {}".format(pivot))
            cur += 1
            cur %= len(star)
        # -- now remove the 3 triangles by performing a flip3->1
        kept = self.flip31(pivot, star)
        self._drop_vertex(pivot)
        return [t for t in result if self.triangles[t] is not None and
                t not in (kept,)] + [kept]

    def flip31(self, pivot, star):
        """'Flips' 3 triangles into 1,
        i.e. dissolves the three triangles around the pivot into 1 triangle
        """
        assert len(star) == 3
        link = []
        outer = []
        for t in star:
            T = self.triangles[t]
            side = T.vertices.index(pivot)
            link.append(T.vertices[orig(side)])
            outer.append((T.neighbours[side], T.constrained[side], t))
        keep = star[0]
        K = self.triangles[keep]
        # link vertices x, y, z, triangle i of the star is (pivot, x_i, x_i+1)
        x, y, z = link
        # edge (x, y) is opposite z, (y, z) opposite x, (z, x) opposite y
        (nxy, cxy, oxy), (nyz, cyz, oyz), (nzx, czx, ozx) = outer
        K.vertices = [x, y, z]
        K.neighbours = [nyz, nzx, nxy]
        K.constrained = [cyz, czx, cxy]
        self.relink(nyz, oyz, keep)
        self.relink(nzx, ozx, keep)
        if oxy != keep:
            self.relink(nxy, oxy, keep)
        for t in star[1:]:
            self.free_triangle(t)
        for v in K.vertices:
            self.incident[v] = keep
        self.incident[pivot] = None
        assert self._symmetric(keep, nxy, nyz, nzx)
        return keep

    # -- consistency
    def _symmetric(self, *indices):
        """Neighbour symmetry for the given triangles (debug check)"""
        for t in indices:
            if t is None:
                continue
            tri = self.triangles[t]
            if tri is None:
                return False
            for n in tri.neighbours:
                if n is None or self.triangles[n] is None:
                    return False
                if t not in self.triangles[n].neighbours:
                    return False
        return True

    def check_consistency(self):
        """Check the triangles for consistent neighbouring relationships

        For every triangle it checks whether the triangle its neighbours also
        point back to this triangle (over the same edge), that real triangles
        are ccw and that constrained flags agree with the segments.
        """
        errors = []
        seen = set()
        for t, tri in enumerate(self.triangles):
            if tri is None:
                continue
            if GHOST in tri.vertices[:2]:
                errors.append("{}: ghost vertex not at position 2".format(t))
            elif tri.is_finite:
                a, b, c = self.points(t)
                if orient2d(a, b, c) <= 0:
                    errors.append("{}: not counterclockwise".format(t))
            for side in range(3):
                n = tri.neighbours[side]
                if n is None or self.triangles[n] is None:
                    errors.append("{}: missing neighbour {}".format(t, side))
                    continue
                other = self.triangles[n]
                if t not in other.neighbours:
                    errors.append("{} {}".format(t, n))
                    continue
                nside = other.neighbours.index(t)
                a, b = self.segment(t, side)
                if self.segment(n, nside) != (b, a):
                    errors.append("{} {}: no shared edge".format(t, n))
                if other.constrained[nside] != tri.constrained[side]:
                    errors.append("{} {}: constrained flag".format(t, n))
                if tri.constrained[side]:
                    key = edge_key(a, b)
                    seen.add(key)
                    if key not in self.segments:
                        errors.append("{}: unknown constraint".format(key))
        for key in self.segments:
            if key not in seen:
                errors.append("{}: constraint not in mesh".format(key))
        for v, t in enumerate(self.incident):
            if t is not None and (self.triangles[t] is None or
                                  v not in self.triangles[t].vertices):
                errors.append("vertex {}: wrong incident triangle".format(v))
        if len(errors) > 0:
            raise InternalConsistencyError("\n".join(errors))
