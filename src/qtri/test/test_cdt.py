from random import Random
import unittest

from qtri.delaunay.cdt import mark_excluded, ConstraintInserter
from qtri.delaunay.helpers import ToPointsAndSegments, jittered_grid
from qtri.delaunay.insert_kd import triangulate
from qtri.delaunay.iter import FiniteEdgeIterator, TriangleIterator, \
    RegionatedTriangleIterator
from qtri.delaunay.tds import HOLE, SEGMENT, edge_key
from qtri.errors import InvalidInput


def constraints(dt):
    return set(edge_key(*dt.segment(e.triangle, e.side))
               for e in FiniteEdgeIterator(dt, constraints_only=True))


class TestConversion(unittest.TestCase):

    def test_polygon(self):
        conv = ToPointsAndSegments()
        conv.add_polygon(
            [[(0, 0), (22, 0), (14, 10), (2, 8), (0, 6.5), (0, 0)]])
        self.assertEqual(len(conv.points), 5)
        self.assertEqual(len(conv.boundaries), 1)
        self.assertEqual(conv.boundaries[0][0], (0.0, 0.0))

    def test_shared_points(self):
        conv = ToPointsAndSegments()
        conv.add_polygon([[(0, 0), (4, 0), (4, 4), (0, 4), (0, 0)],
                          [(1, 1), (2, 1), (2, 2), (1, 1)]])
        conv.add_polygon([[(4, 0), (6, 0), (4, 4), (4, 0)]])
        self.assertEqual(len(conv.points), 8)
        self.assertEqual(conv.add_point((6, 0)), 7)
        self.assertEqual([len(b) for b in conv.boundaries], [4, 3, 3])
        self.assertEqual(conv.boundaries[2][2], conv.boundaries[0][2])

    def test_open_ring(self):
        conv = ToPointsAndSegments()
        with self.assertRaises(InvalidInput):
            conv.add_polygon([[(0, 0), (1, 0), (1, 1)]])


class TestConstraints(unittest.TestCase):

    def test_diagonal(self):
        dt = triangulate([(0, 0), (10, 0), (10, 1), (0, 1)])
        ConstraintInserter(dt).insert([(1, 3)])
        dt.check_consistency()
        self.assertEqual(constraints(dt), set([(1, 3)]))
        self.assertEqual(dt.segments[(1, 3)], SEGMENT)

    def test_long_constraint(self):
        # a constraint crossing many triangles
        pts = jittered_grid(50, 10, 2, rng=Random(3))
        pts.extend([(-1, 5), (51, 5.5)])
        n = len(pts)
        dt = triangulate(pts, [(n - 2, n - 1, SEGMENT)])
        dt.check_consistency()
        self.assertEqual(constraints(dt), set([(n - 2, n - 1)]))
        assert dt.find_edge(n - 2, n - 1) is not None

    def test_through_vertex(self):
        pts = [(0, 0), (1, 0), (2, 0), (1, 1), (1, -1)]
        dt = triangulate(pts, [(0, 2, HOLE)])
        dt.check_consistency()
        self.assertEqual(constraints(dt), set([(0, 1), (1, 2)]))
        self.assertEqual(dt.segments, {(0, 1): HOLE, (1, 2): HOLE})

    def test_crossing(self):
        pts = [(0, 0), (10, 0), (10, 10), (0, 10), (3, 5)]
        with self.assertRaises(InvalidInput):
            triangulate(pts, [(0, 2), (1, 3)])

    def test_existing_edge(self):
        dt = triangulate([(0, 0), (10, 0), (5, 5)], [(0, 1), (1, 0)])
        dt.check_consistency()
        self.assertEqual(constraints(dt), set([(0, 1)]))


class TestRegions(unittest.TestCase):

    def setUp(self):
        pts = [(0, 0), (10, 0), (10, 10), (0, 10),
               (4, 4), (6, 4), (6, 6), (4, 6)]
        segments = [(0, 1), (1, 2), (2, 3), (3, 0),
                    (4, 5), (5, 6), (6, 7), (7, 4)]
        self.dt = triangulate(pts, segments)

    def test_depths(self):
        depths = {}
        for group, depth, t in RegionatedTriangleIterator(self.dt):
            depths.setdefault(depth, []).append(t)
        self.assertEqual(sorted(depths), [0, 1, 2])
        # ghosts outside, annulus, the hole
        self.assertEqual(len(depths[0]), 4)
        self.assertEqual(len(depths[1]), 8)
        self.assertEqual(len(depths[2]), 2)

    def test_exclusion(self):
        kept = mark_excluded(self.dt)
        self.assertEqual(kept, 8)
        self.assertEqual(
            len(list(TriangleIterator(self.dt, kept_only=True))), 8)
        # the edges of the hole triangles are no longer interior
        self.assertEqual(
            len(list(FiniteEdgeIterator(self.dt, interior_only=True))), 16)


if __name__ == '__main__':
    unittest.main()
