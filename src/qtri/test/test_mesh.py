from math import hypot
from random import Random
import unittest

from qtri import build_mesh, build_constrained_mesh, insert_point, \
    ToPointsAndSegments, InvalidInput, MeshError, HOLE, SEGMENT
from qtri.delaunay.helpers import jittered_grid


SQUARE = [(0, 0), (100, 0), (100, 100), (0, 100)]
HOLE_LOOP = [(40, 40), (60, 40), (60, 60), (40, 60)]


def centroid(mesh, t):
    vs = mesh.triangulation.vertices
    a, b, c = [vs[v] for v in t.vertices]
    return (a.x + b.x + c.x) / 3.0, (a.y + b.y + c.y) / 3.0


class TestBuildMesh(unittest.TestCase):

    def test_unit_square(self):
        mesh = build_mesh([(0, 0), (1, 0), (1, 1), (0, 1)])
        self.assertEqual(len(mesh.vertices), 4)
        self.assertEqual(len(mesh.edges), 5)
        self.assertEqual(len(mesh.triangles), 2)
        assert mesh.report is None
        self.assertEqual(str(mesh), "Mesh(4 vertices, 2 triangles)")

    def test_neighbours(self):
        mesh = build_mesh([(0, 0), (1, 0), (1, 1), (0, 1)])
        t0, t1 = mesh.triangles
        self.assertEqual(t0.neighbours.count(None), 2)
        assert t1.index in t0.neighbours
        assert t0.index in t1.neighbours

    def test_vertex(self):
        mesh = build_mesh([(0, 0), (1, 0), (1, 1), (0, 1)])
        self.assertEqual((mesh.vertex(2).x, mesh.vertex(2).y), (1.0, 1.0))
        with self.assertRaises(KeyError):
            mesh.vertex(4)

    def test_invalid(self):
        with self.assertRaises(InvalidInput):
            build_mesh([(0, 0), (1, 0)])
        with self.assertRaises(InvalidInput):
            build_mesh([(0, 0), (1, 0), (1, float("nan"))])
        with self.assertRaises(InvalidInput):
            build_mesh([(0, 0), (1, 0), (1,)])
        with self.assertRaises(InvalidInput):
            build_mesh([(0, 0), (1, 0), (0, 1), (1, 0)])
        # all errors share a base class
        with self.assertRaises(MeshError):
            build_mesh([(0, 0), (1, 0), (2, 0)])


class TestConstrainedMesh(unittest.TestCase):

    def test_hole(self):
        mesh = build_constrained_mesh([], [SQUARE, HOLE_LOOP])
        mesh.check_consistency()
        self.assertEqual(len(mesh.triangles), 8)
        for t in mesh.triangles:
            x, y = centroid(mesh, t)
            assert not (40 < x < 60 and 40 < y < 60)
        # Euler for a domain with one hole
        V, E, F = len(mesh.vertices), len(mesh.edges), len(mesh.triangles)
        self.assertEqual(V - E + F, 0)

    def test_scattered_points(self):
        pts = jittered_grid(100, 100, 10, rng=Random(5))
        mesh = build_constrained_mesh(pts, [SQUARE, HOLE_LOOP])
        mesh.check_consistency()
        vs = mesh.triangulation.vertices
        for t in mesh.triangles:
            inside = [40 < vs[v].x < 60 and 40 < vs[v].y < 60
                      for v in t.vertices]
            assert not all(inside)
            x, y = centroid(mesh, t)
            assert not (40 < x < 60 and 40 < y < 60)

    def test_markers(self):
        mesh = build_constrained_mesh([(20, 80)], [SQUARE, HOLE_LOOP])
        markers = sorted(e.marker for e in mesh.constrained_edges)
        self.assertEqual(markers, [SEGMENT] * 4 + [HOLE] * 4)
        for e in mesh.edges:
            if not e.constrained:
                assert e.marker is None
        self.assertEqual(len(mesh.vertices), 9)

    def test_hole_refined(self):
        mesh = build_constrained_mesh([], [SQUARE, HOLE_LOOP],
                                      min_angle=20, max_area=200)
        mesh.check_consistency()
        for t in mesh.triangles:
            x, y = centroid(mesh, t)
            assert not (40 < x < 60 and 40 < y < 60)
        V, E, F = len(mesh.vertices), len(mesh.edges), len(mesh.triangles)
        self.assertEqual(V - E + F, 0)
        # the boundaries are chains of constrained edges
        vs = mesh.triangulation.vertices
        length = {SEGMENT: 0.0, HOLE: 0.0}
        for e in mesh.constrained_edges:
            length[e.marker] += hypot(vs[e.a].x - vs[e.b].x,
                                      vs[e.a].y - vs[e.b].y)
        self.assertAlmostEqual(length[SEGMENT], 400.0)
        self.assertAlmostEqual(length[HOLE], 80.0)

    def test_concave(self):
        # L-shape, the notch is outside
        loop = [(0, 0), (2, 0), (2, 1), (1, 1), (1, 2), (0, 2), (0, 0)]
        mesh = build_constrained_mesh([], [loop])
        self.assertEqual(len(mesh.triangles), 4)
        for t in mesh.triangles:
            x, y = centroid(mesh, t)
            assert not (x > 1 and y > 1)

    def test_from_polygon(self):
        conv = ToPointsAndSegments()
        conv.add_polygon([SQUARE + SQUARE[:1], HOLE_LOOP + HOLE_LOOP[:1]])
        mesh = build_constrained_mesh([], conv.boundaries)
        self.assertEqual(len(mesh.triangles), 8)

    def test_invalid_boundaries(self):
        with self.assertRaises(InvalidInput):
            build_constrained_mesh([], [])
        with self.assertRaises(InvalidInput):
            build_constrained_mesh([], [[(0, 0), (1, 0), (0, 0)]])
        with self.assertRaises(InvalidInput):
            build_constrained_mesh([], [[(0, 0), (1, 0), (2, 0)]])
        # bow tie
        with self.assertRaises(InvalidInput):
            build_constrained_mesh([], [[(0, 0), (1, 1), (1, 0), (0, 1)]])
        with self.assertRaises(InvalidInput):
            build_constrained_mesh([(50, 50), (50, 50)], [SQUARE])

    def test_nested_hole(self):
        outer_hole = [(20, 20), (80, 20), (80, 80), (20, 80)]
        with self.assertRaises(InvalidInput):
            build_constrained_mesh([], [SQUARE, outer_hole, HOLE_LOOP])
        with self.assertRaises(InvalidInput):
            build_constrained_mesh([], [SQUARE, HOLE_LOOP, outer_hole])

    def test_hole_outside(self):
        far = [(200, 200), (220, 200), (220, 220), (200, 220)]
        with self.assertRaises(InvalidInput):
            build_constrained_mesh([], [SQUARE, far])
        with self.assertRaises(InvalidInput):
            build_constrained_mesh([], [SQUARE, HOLE_LOOP, far])


class TestInsertPoint(unittest.TestCase):

    def test_insert(self):
        mesh = build_mesh([(0, 0), (1, 0), (1, 1), (0, 1)])
        more = insert_point(mesh, (0.25, 0.5))
        more.check_consistency()
        self.assertEqual(len(more.vertices), 5)
        self.assertEqual(len(more.triangles), 4)
        # the original mesh is untouched
        self.assertEqual(len(mesh.vertices), 4)

    def test_outside_hull(self):
        mesh = build_mesh([(0, 0), (1, 0), (1, 1), (0, 1)])
        more = insert_point(mesh, (2, 0.5))
        more.check_consistency()
        self.assertEqual(len(more.triangles), 3)

    def test_duplicate(self):
        mesh = build_mesh([(0, 0), (1, 0), (1, 1), (0, 1)])
        with self.assertRaises(InvalidInput):
            insert_point(mesh, (1, 1))
        self.assertEqual(len(mesh.vertices), 4)
        mesh.check_consistency()

    def test_on_constraint(self):
        mesh = build_constrained_mesh([], [SQUARE, HOLE_LOOP])
        more = insert_point(mesh, (50, 0))
        more.check_consistency()
        markers = [e.marker for e in more.constrained_edges]
        self.assertEqual(markers.count(SEGMENT), 5)


if __name__ == '__main__':
    unittest.main()
