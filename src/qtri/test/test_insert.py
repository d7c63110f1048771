from random import Random
import unittest

from qtri.delaunay.insert_kd import kdsort, decorate, triangulate
from qtri.delaunay.helpers import random_circle_vertices, \
    random_sorted_vertices, jittered_grid
from qtri.delaunay.iter import FiniteEdgeIterator, TriangleIterator
from qtri.delaunay.preds import incircle
from qtri.errors import DegenerateGeometry


def assert_delaunay(dt):
    """No vertex lies strictly inside the circumcircle of a neighbouring
    triangle, over an unconstrained edge"""
    vs = dt.vertices
    for t in TriangleIterator(dt):
        tri = dt.triangles[t]
        a, b, c = dt.points(t)
        for side in range(3):
            n = dt.triangles[tri.neighbours[side]]
            if not n.is_finite or tri.constrained[side]:
                continue
            opposite = n.vertices[n.neighbours.index(t)]
            assert incircle(a, b, c, vs[opposite]) <= 0, (t, side)


def euler(dt):
    """V - E + F, over the finite part"""
    V = len(dt.vertices)
    E = len(list(FiniteEdgeIterator(dt)))
    F = len(list(TriangleIterator(dt)))
    return V - E + F


class TestKDSort(unittest.TestCase):

    def test_order(self):
        pts = decorate([(0, 0), (10, 0), (5, 5), (2, 8), (7, 1)])
        result = kdsort(pts)
        self.assertEqual(len(result), 5)
        self.assertEqual(set(pt[2] for pt in result), set(range(5)))
        assert result[0][3] is None
        for pt in result[1:]:
            # every parent comes earlier in the order
            assert 0 <= pt[3] < result.index(pt)

    def test_empty(self):
        self.assertEqual(kdsort([]), [])


class TestTriangulate(unittest.TestCase):

    def test_square(self):
        dt = triangulate([(0, 0), (1, 0), (1, 1), (0, 1)])
        self.assertEqual(len(dt.vertices), 4)
        self.assertEqual(len(list(FiniteEdgeIterator(dt))), 5)
        self.assertEqual(len(list(TriangleIterator(dt))), 2)
        dt.check_consistency()

    def test_circle(self):
        pts = random_circle_vertices(500, 0, 0, rng=Random(4))
        dt = triangulate(pts)
        dt.check_consistency()
        self.assertEqual(len(dt.vertices), len(pts))
        self.assertEqual(euler(dt), 1)
        assert_delaunay(dt)

    def test_grid(self):
        # many cocircular and collinear points
        pts = [(x, y) for x in range(12) for y in range(9)]
        dt = triangulate(pts)
        dt.check_consistency()
        self.assertEqual(euler(dt), 1)
        self.assertEqual(len(list(TriangleIterator(dt))), 2 * 11 * 8)
        assert_delaunay(dt)

    def test_collinear_points(self):
        # all points but one on a line
        pts = [(float(i), 0.0) for i in range(10)] + [(4.5, 3.0)]
        dt = triangulate(pts)
        dt.check_consistency()
        self.assertEqual(len(list(TriangleIterator(dt))), 9)
        self.assertEqual(len(dt.hull_edges()), 11)
        self.assertEqual(euler(dt), 1)

    def test_random_grid(self):
        pts = random_sorted_vertices(200, rng=Random(7))
        dt = triangulate(pts)
        dt.check_consistency()
        self.assertEqual(euler(dt), 1)
        assert_delaunay(dt)

    def test_jittered(self):
        pts = jittered_grid(100, 50, 5, rng=Random(11))
        self.assertEqual(len(pts), 20 * 10)
        dt = triangulate(pts)
        dt.check_consistency()
        assert_delaunay(dt)

    def test_deterministic(self):
        pts = random_circle_vertices(200, 0, 0, rng=Random(2))
        one = triangulate(pts, seed=5)
        other = triangulate(pts, seed=5)
        self.assertEqual(
            [t.vertices if t else None for t in one.triangles],
            [t.vertices if t else None for t in other.triangles])

    def test_degenerate(self):
        with self.assertRaises(DegenerateGeometry):
            triangulate([(0, 0), (1, 1), (2, 2), (3, 3)])
        with self.assertRaises(DegenerateGeometry):
            triangulate([(0, 0), (1, 1)])


if __name__ == '__main__':
    unittest.main()
