from random import Random
import unittest

from qtri import build_mesh, build_constrained_mesh, refine, \
    ConfigurationError, DEFAULT_MAX_STEINER
from qtri.delaunay.helpers import jittered_grid, random_circle_vertices
from qtri.delaunay.insert_kd import triangulate
from qtri.delaunay.preds import area, incircle, min_angle
from qtri.delaunay.refine import Refiner, RefinementReport, \
    refine as refine_triangulation
from qtri.delaunay.tds import HULL, SEGMENT


SQUARE = [(0, 0), (10, 0), (10, 10), (0, 10)]
HOLE = [(4, 4), (6, 4), (6, 6), (4, 6)]
SLIVER = [(0, 0), (10, 0), (10, 0.5), (0, 0.5)]


def assert_constrained_delaunay(testcase, mesh):
    vs = mesh.triangulation.vertices
    triangles = mesh.triangles
    for t in triangles:
        a, b, c = [vs[v] for v in t.vertices]
        for side, n in enumerate(t.neighbours):
            if n is None or t.constrained[side]:
                continue
            other = triangles[n]
            opposite = other.vertices[other.neighbours.index(t.index)]
            testcase.assertLessEqual(incircle(a, b, c, vs[opposite]), 0)


class TestRefiner(unittest.TestCase):

    def test_protect_hull(self):
        dt = triangulate(SLIVER + [(5, 0.25)])
        refiner = Refiner(dt, 20.0)
        refiner.protect_hull()
        self.assertEqual(len(dt.segments), 4)
        assert all(m == HULL for m in dt.segments.values())
        assert all(v.marker == SEGMENT for v in dt.vertices[:4])
        dt.check_consistency()

    def test_in_place(self):
        dt = triangulate(SLIVER)
        report = refine_triangulation(dt, 25.0)
        dt.check_consistency()
        assert report.conforming
        self.assertEqual(len(dt.vertices), 4 + report.steiner_count)
        assert all(v.steiner for v in dt.vertices[4:])

    def test_report(self):
        report = RefinementReport()
        assert report.conforming
        self.assertEqual(report.steiner_count, 0)
        assert "steiner_count=0" in repr(report)


class TestQuality(unittest.TestCase):

    def test_square_unchanged(self):
        mesh = build_mesh([(0, 0), (1, 0), (1, 1), (0, 1)], min_angle=20)
        self.assertEqual(len(mesh.triangles), 2)
        self.assertEqual(mesh.report.steiner_count, 0)

    def test_min_angle(self):
        mesh = build_mesh(SLIVER, min_angle=20)
        mesh.check_consistency()
        assert mesh.report.conforming
        assert mesh.report.steiner_count > 0
        self.assertGreaterEqual(mesh.min_angle(), 20.0)
        assert_constrained_delaunay(self, mesh)

    def test_min_angle_with_hole(self):
        mesh = build_constrained_mesh([], [SQUARE, HOLE], min_angle=25)
        mesh.check_consistency()
        assert mesh.report.conforming
        self.assertGreaterEqual(mesh.min_angle(), 25.0)
        assert_constrained_delaunay(self, mesh)

    def test_max_area(self):
        mesh = build_mesh(SQUARE, max_area=2.5)
        vs = mesh.triangulation.vertices
        for t in mesh.triangles:
            self.assertLessEqual(area(*[vs[v] for v in t.vertices]), 2.5)
        total = sum(area(*[vs[v] for v in t.vertices])
                    for t in mesh.triangles)
        self.assertAlmostEqual(total, 100.0)

    def test_small_input_angle(self):
        # two boundary edges meet at a tiny angle, which can not be improved
        pts = [(0, 0), (10, 0), (0, 1.5)]
        mesh = build_constrained_mesh([], [pts], min_angle=20,
                                      max_steiner=300)
        mesh.check_consistency()
        report = mesh.report
        assert report.steiner_count > 0
        vs = mesh.triangulation.vertices
        bad = [t for t in mesh.triangles
               if min_angle(*[vs[v] for v in t.vertices]) < 20]
        self.assertEqual(len(bad), report.skipped + len(report.residual))

    def test_budget(self):
        mesh = build_mesh(SLIVER, min_angle=30, max_steiner=3)
        mesh.check_consistency()
        report = mesh.report
        assert report.budget_exhausted
        assert not report.conforming
        self.assertLessEqual(report.steiner_count, 3)
        assert len(report.residual) > 0
        for bad in report.residual:
            self.assertLess(bad.min_angle, 30)

    def test_idempotent(self):
        mesh = build_mesh(SLIVER, min_angle=20)
        again = refine(mesh, 20)
        self.assertEqual(again.report.steiner_count, 0)
        self.assertEqual(len(again.triangles), len(mesh.triangles))

    def test_refine_copy(self):
        mesh = build_mesh(SLIVER)
        refined = refine(mesh, 20)
        self.assertEqual(len(mesh.triangles), 2)
        assert len(refined.triangles) > 2
        none = refine(mesh, 0)
        self.assertEqual(none.report.steiner_count, 0)

    def test_configuration(self):
        with self.assertRaises(ConfigurationError):
            build_mesh(SQUARE, min_angle=40)
        with self.assertRaises(ConfigurationError):
            build_mesh(SQUARE, min_angle=-1)
        with self.assertRaises(ConfigurationError):
            build_mesh(SQUARE, max_area=0)
        with self.assertRaises(ConfigurationError):
            build_mesh(SQUARE, min_angle=20, max_steiner=-1)
        with self.assertRaises(ConfigurationError):
            build_mesh(SQUARE, min_angle="20")
        self.assertEqual(DEFAULT_MAX_STEINER, 10000)


class TestRandomInput(unittest.TestCase):

    def check_refined(self, pts, angle):
        dt = triangulate(pts)
        report = refine_triangulation(dt, angle)
        dt.check_consistency()
        refiner = Refiner(dt, angle)
        bad = [t for t in dt.alive() if refiner.is_bad(t)]
        self.assertEqual(len(bad), report.skipped + len(report.residual))
        if report.conforming:
            # what is left are the flat triangles along split hull edges
            assert all(refiner.is_unimprovable(t) for t in bad)
            good = [min_angle(*dt.points(t)) for t in dt.alive()
                    if dt.triangles[t].is_finite and t not in bad]
            self.assertGreaterEqual(min(good), angle - 1e-9)
            again = refine_triangulation(dt, angle)
            self.assertEqual(again.steiner_count, 0)
            dt.check_consistency()
        return report

    def test_circle(self):
        for angle in (20, 30, 33):
            for seed in range(6):
                pts = random_circle_vertices(40, rng=Random(seed))
                report = self.check_refined(pts, angle)
                if angle == 20:
                    assert report.conforming

    def test_jittered_grid(self):
        for angle in (20, 30, 33):
            for seed in range(3):
                pts = jittered_grid(50, 50, 10, rng=Random(seed))
                self.check_refined(pts, angle)

    def test_build_mesh(self):
        for seed in range(4):
            pts = random_circle_vertices(40, rng=Random(seed))
            mesh = build_mesh(pts, min_angle=30)
            mesh.check_consistency()
            if not mesh.report.conforming:
                continue
            if mesh.report.skipped == 0:
                self.assertGreaterEqual(mesh.min_angle(), 30 - 1e-9)
            self.assertEqual(refine(mesh, 30).report.steiner_count, 0)


if __name__ == '__main__':
    unittest.main()
