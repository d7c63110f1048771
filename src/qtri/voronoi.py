'''
Voronoi diagram, dual to a (constrained) Delaunay mesh
'''
import logging
import time

from qtri.delaunay.preds import circumcenter
from qtri.delaunay.tds import ccw, cw


class Face(object):
    """The Voronoi cell of one mesh vertex.

    boundary is the list of Voronoi vertices (circumcenters), counter-
    clockwise around the vertex. An unbounded face has two rays: the first
    comes in from infinity to boundary[0], the second goes out from
    boundary[-1]; each is a tuple (origin, direction).
    """

    __slots__ = ('vertex', 'boundary', 'indices', 'rays', 'neighbours')

    def __init__(self, vertex, boundary, indices, rays, neighbours):
        self.vertex = vertex
        self.boundary = boundary
        self.indices = indices
        self.rays = rays
        self.neighbours = neighbours

    @property
    def unbounded(self):
        return len(self.rays) > 0

    def edges(self):
        """Yields the finite edges (start, end) of the boundary"""
        pts = self.boundary
        count = len(pts) if not self.unbounded else len(pts) - 1
        for i in range(count):
            yield pts[i], pts[(i + 1) % len(pts)]

    def __repr__(self):
        return "Face({}, {} vertices, unbounded={})".format(
            self.vertex, len(self.boundary), self.unbounded)


class VoronoiDiagram(object):
    """Voronoi diagram of a Mesh

    vertices: circumcenters, at the index of the mesh triangle
    faces: Face per mesh vertex (ordered by vertex id)
    segments: (start, end, left, right) with start / end the Voronoi
        vertices and left / right the mesh vertices whose faces are on the
        left / right of the segment
    rays: (start, direction, left, right) for every boundary edge of the
        mesh
    """

    def __init__(self, vertices, faces, segments, rays, cells, neighbours):
        self.vertices = vertices
        self.faces = faces
        self.segments = segments
        self.rays = rays
        self._by_vertex = dict((face.vertex, face) for face in faces)
        self._cells = cells
        self._neighbours = neighbours

    def face(self, vertex_id):
        return self._by_vertex[vertex_id]

    def border_faces(self):
        """Faces that are not bounded (of vertices on the mesh boundary)"""
        return [face for face in self.faces if face.unbounded]

    def interior_faces(self):
        return [face for face in self.faces if not face.unbounded]

    def vertex_cells(self, i):
        """The mesh vertices whose faces meet at Voronoi vertex i"""
        return self._cells[i]

    def vertex_neighbours(self, i):
        """The Voronoi vertices connected to Voronoi vertex i"""
        return self._neighbours[i]


class VoronoiTransformer(object):
    """Class to transform a Delaunay mesh into a Voronoi diagram

    The class generates a series of segments, together with information how
    these should be glued together to the Voronoi diagram
    (start node id, end node id, left face id, right face id)
    """

    def __init__(self, mesh):
        self.mesh = mesh
        self.triangles = mesh.triangles

    def transform(self):
        """Calculate center of circumscribed circles for all triangles
        and generate a line segment from one triangle to its neighbours
        (this happens only once for every pair).
        """
        self._transform_centers()
        self._transform_segments()
        self._transform_faces()
        cells = [t.vertices for t in self.triangles]
        neighbours = [tuple(n for n in t.neighbours if n is not None)
                      for t in self.triangles]
        return VoronoiDiagram(self.centers, self.faces, self.segments,
                              self.rays, cells, neighbours)

    def _transform_centers(self):
        vs = self.mesh.triangulation.vertices
        self.centers = [circumcenter(*[vs[v] for v in t.vertices])
                        for t in self.triangles]

    def _transform_segments(self):
        vs = self.mesh.triangulation.vertices
        segments = []
        rays = []
        for t in self.triangles:
            for side, n in enumerate(t.neighbours):
                left = t.vertices[cw(side)]
                right = t.vertices[ccw(side)]
                if n is None:
                    # boundary edge right -> left, pointing outwards
                    dx = vs[left].x - vs[right].x
                    dy = vs[left].y - vs[right].y
                    rays.append((t.index, (dy, -dx), left, right))
                elif t.index < n:
                    segments.append((t.index, n, left, right))
        self.segments = segments
        self.rays = rays

    def _transform_faces(self):
        # one incident triangle per vertex
        incident = {}
        neighbours = {}
        for t in self.triangles:
            for i, v in enumerate(t.vertices):
                incident.setdefault(v, (t.index, i))
                others = neighbours.setdefault(v, set())
                others.add(t.vertices[ccw(i)])
                others.add(t.vertices[cw(i)])
        self.faces = []
        for v in sorted(incident):
            fan = self._fan(v, *incident[v])
            self.faces.append(self._face(v, fan, sorted(neighbours[v])))

    def _fan(self, v, t, i):
        """Triangles around v, counterclockwise; for a vertex on the
        boundary the fan starts right after the gap"""
        triangles = self.triangles
        start = t
        # rotate clockwise to the gap (if any)
        while True:
            previous = triangles[t].neighbours[cw(i)]
            if previous is None or previous == start:
                break
            t = previous
            i = triangles[t].vertices.index(v)
        start = t
        fan = []
        while True:
            fan.append(t)
            t = triangles[t].neighbours[ccw(i)]
            if t is None or t == start:
                break
            i = triangles[t].vertices.index(v)
        return fan

    def _face(self, v, fan, neighbours):
        vs = self.mesh.triangulation.vertices
        triangles = self.triangles
        boundary = [self.centers[t] for t in fan]
        first, last = triangles[fan[0]], triangles[fan[-1]]
        rays = []
        if first.neighbours[cw(first.vertices.index(v))] is None:
            # edge v -> a on the boundary, outward is to the right
            a = first.vertices[ccw(first.vertices.index(v))]
            dx, dy = vs[a].x - vs[v].x, vs[a].y - vs[v].y
            rays.append((boundary[0], (dy, -dx)))
            # edge d -> v on the boundary
            d = last.vertices[cw(last.vertices.index(v))]
            dx, dy = vs[v].x - vs[d].x, vs[v].y - vs[d].y
            rays.append((boundary[-1], (dy, -dx)))
        return Face(v, boundary, tuple(fan), tuple(rays), tuple(neighbours))


def voronoi(mesh):
    """Voronoi diagram of the kept vertices of a mesh"""
    start = time.perf_counter()
    diagram = VoronoiTransformer(mesh).transform()
    end = time.perf_counter()
    logging.debug("Voronoi diagram took: " + str(end - start) + " secs")
    logging.debug("{} faces, {} unbounded".format(
        len(diagram.faces), len(diagram.border_faces())))
    return diagram
