'''
Geometric predicates and constructions

orient2d and incircle are the adaptive exact predicates of geompreds
(Shewchuk, Adaptive Precision Floating-Point Arithmetic and Fast Robust
Geometric Predicates, 1997). The remaining predicates and the circumcenter
fall back on rationals when floating point can not be trusted.
'''
from math import atan2, degrees, hypot

from geompreds import orient2d, incircle
from gmpy2 import mpq

# machine epsilon as used by Shewchuk (half an ulp of 1.0)
EPSILON = 2.0 ** -53
CCW_ERRBOUND = (3.0 + 16.0 * EPSILON) * EPSILON
DOT_ERRBOUND = (2.0 + 8.0 * EPSILON) * EPSILON
# distance (relative to the coordinates) up to which points that were
# constructed on a line are taken to be on it
ROUNDING_TOLERANCE = 64.0 * EPSILON


def _sign(value):
    if value > 0:
        return 1.0
    elif value < 0:
        return -1.0
    return 0.0


def orientation(pa, pb, pc):
    """Classify pc with respect to the line pa -> pb: 1 left, 0 on, -1 right
    """
    det = orient2d(pa, pb, pc)
    if det > 0:
        return 1
    elif det < 0:
        return -1
    return 0


def _diametral(pa, pb, pv):
    """Dot product of the vectors from pv to pa and pb (sign is exact)"""
    ax = pa[0] - pv[0]
    ay = pa[1] - pv[1]
    bx = pb[0] - pv[0]
    by = pb[1] - pv[1]
    xx = ax * bx
    yy = ay * by
    dot = xx + yy
    errbound = DOT_ERRBOUND * (abs(xx) + abs(yy))
    if dot > errbound or -dot > errbound:
        return dot
    vx, vy = mpq(pv[0]), mpq(pv[1])
    return _sign((mpq(pa[0]) - vx) * (mpq(pb[0]) - vx) +
                 (mpq(pa[1]) - vy) * (mpq(pb[1]) - vy))


def encroaches(pa, pb, pv):
    """Returns True if pv lies inside or on the diametral circle of the
    segment pa -> pb, i.e. if the angle at pv is 90 degrees or more.
    """
    return _diametral(pa, pb, pv) <= 0


# ------------------------------------------------------------------------------
# Float helpers (constructions, not predicates)
#

def nearly_collinear(pa, pb, pc):
    """Returns True if pb lies on the line through pa and pc, up to the
    rounding of points that were constructed on that line (e.g. midpoints
    of midpoints)
    """
    lx, ly = pc[0] - pa[0], pc[1] - pa[1]
    length = hypot(lx, ly)
    if length == 0:
        return True
    offset = abs(lx * (pb[1] - pa[1]) - ly * (pb[0] - pa[0])) / length
    scale = max(abs(pa[0]), abs(pa[1]), abs(pb[0]), abs(pb[1]),
                abs(pc[0]), abs(pc[1]), length)
    return offset <= ROUNDING_TOLERANCE * scale


def circumcenter(pa, pb, pc):
    """Returns the coordinates of the circumcenter of the triangle pa, pb, pc

    For (nearly) flat triangles the center is computed with rationals,
    collinear points give infinite coordinates.
    """
    ax, ay = pa[0], pa[1]
    bx = pb[0] - ax
    by = pb[1] - ay
    cx = pc[0] - ax
    cy = pc[1] - ay

    bl = bx * bx + by * by
    cl = cx * cx + cy * cy

    d = bx * cy - by * cx
    errbound = CCW_ERRBOUND * (abs(bx * cy) + abs(by * cx))
    if not (d > errbound or -d > errbound):
        return _circumcenter_exact(pa, pb, pc)

    x = (cy * bl - by * cl) * 0.5 / d
    y = (bx * cl - cx * bl) * 0.5 / d

    return (ax + x, ay + y)


def _circumcenter_exact(pa, pb, pc):
    ax, ay = mpq(pa[0]), mpq(pa[1])
    bx, by = mpq(pb[0]) - ax, mpq(pb[1]) - ay
    cx, cy = mpq(pc[0]) - ax, mpq(pc[1]) - ay
    d = bx * cy - by * cx
    if d == 0:
        return (float('inf'), float('inf'))
    bl = bx * bx + by * by
    cl = cx * cx + cy * cy
    x = (cy * bl - by * cl) / (2 * d)
    y = (bx * cl - cx * bl) / (2 * d)
    return (float(ax + x), float(ay + y))


def circumradius(pa, pb, pc):
    center = circumcenter(pa, pb, pc)
    return hypot(center[0] - pa[0], center[1] - pa[1])


def midpoint(pa, pb):
    return ((pa[0] + pb[0]) * 0.5, (pa[1] + pb[1]) * 0.5)


def area(pa, pb, pc):
    """Area of the triangle (positive for ccw triangles)"""
    return ((pb[0] - pa[0]) * (pc[1] - pa[1]) -
            (pb[1] - pa[1]) * (pc[0] - pa[0])) * 0.5


def angles(pa, pb, pc):
    """Interior angles (degrees) at pa, pb and pc respectively"""
    result = []
    for p, q, r in ((pa, pb, pc), (pb, pc, pa), (pc, pa, pb)):
        ux, uy = q[0] - p[0], q[1] - p[1]
        vx, vy = r[0] - p[0], r[1] - p[1]
        result.append(degrees(atan2(abs(ux * vy - uy * vx),
                                    ux * vx + uy * vy)))
    return result


def min_angle(pa, pb, pc):
    """Smallest interior angle of the triangle in degrees"""
    return min(angles(pa, pb, pc))
