'''
Iterators over the triangulation data structure
'''
from collections import deque

from qtri.delaunay.tds import Edge
from qtri.errors import InternalConsistencyError


class FiniteEdgeIterator(object):
    """Iterator over the edges of the finite triangles, each edge is output
    once.

    With constraints_only only the constrained edges are returned, with
    interior_only the edges of excluded triangles (holes, exterior) are
    skipped.
    """

    def __init__(self, triangulation, constraints_only=False,
                 interior_only=False):
        self.triangulation = triangulation
        self.constraints_only = constraints_only
        self.interior_only = interior_only
        self.current_idx = 0  # this is index in the list
        self.pos = -1  # this is index in the triangle (side)

    def __iter__(self):
        return self

    def _skip(self, triangle):
        return triangle is None or not triangle.is_finite or \
            (self.interior_only and triangle.excluded)

    def __next__(self):
        triangles = self.triangulation.triangles
        ret = None
        while self.current_idx < len(triangles):
            triangle = triangles[self.current_idx]
            # skip this triangle if it is an infinite triangle
            if self._skip(triangle):
                self.pos = -1
                self.current_idx += 1
                continue
            self.pos += 1
            neighbour = triangle.neighbours[self.pos]
            # output edges only once:
            # inside the triangulation only the triangle
            # with lowest index its edge is output
            # along the convex hull (or a hole) we always output the edge
            if self.current_idx < neighbour or \
                    self._skip(triangles[neighbour]):
                if not self.constraints_only or \
                        triangle.constrained[self.pos]:
                    ret = Edge(self.current_idx, self.pos)
            if self.pos == 2:
                self.pos = -1
                self.current_idx += 1
            if ret is not None:
                return ret
        raise StopIteration()


class TriangleIterator(object):
    """Iterator over the indices of the finite triangles, in storage order

    With kept_only the excluded triangles are skipped as well.
    """

    def __init__(self, triangulation, kept_only=False):
        self.triangulation = triangulation
        self.kept_only = kept_only
        self.current_idx = 0

    def __iter__(self):
        return self

    def __next__(self):
        triangles = self.triangulation.triangles
        while self.current_idx < len(triangles):
            t = self.current_idx
            triangle = triangles[t]
            self.current_idx += 1
            if triangle is None or not triangle.is_finite:
                continue
            if self.kept_only and triangle.excluded:
                continue
            return t
        raise StopIteration()


class RegionatedTriangleIterator(object):
    """Iterator over all triangles that are fenced off by constraints.
    The constraints fencing off triangles determine the regions.
    The iterator yields a tuple: (region number, depth, triangle index).

    Note:

    - The region number can increase in unexpected ways, e.g. 0, 1, 476, 1440,
    ..., etc.
    - The depth gives the nesting of the regions (the number of constraints
    to cross, at least, to get there from the outside).

    The first group is always the infinite part (at depth 0) of the domain
    around the feature (the parts of the convex hull not belonging to any
    interior part).
    """

    def __init__(self, triangulation):
        # start at the exterior
        self.triangulation = triangulation
        self.visited = set()
        for start, triangle in enumerate(self.triangulation.triangles):
            if triangle is not None and not triangle.is_finite:
                break
        else:
            raise InternalConsistencyError(
                'no infinite triangle found to start walk')
        self.to_visit_stack = [(start, 0)]
        self.later = deque()
        self.group = 0

    def __iter__(self):
        return self

    def __next__(self):
        triangles = self.triangulation.triangles
        while self.to_visit_stack or self.later:
            # visit all triangles in the exterior, subsequently visit
            # all triangles that are enclosed by a set of segments
            while self.to_visit_stack:
                t, depth = self.to_visit_stack.pop()
                if t in self.visited:
                    continue
                self.visited.add(t)
                triangle = triangles[t]
                for i in range(3):
                    constrained = triangle.constrained[i]
                    neighbour = triangle.neighbours[i]
                    if neighbour in self.visited:
                        continue
                    if constrained:
                        self.later.append((neighbour, depth + 1))
                    else:
                        self.to_visit_stack.append((neighbour, depth))
                return (self.group, depth, t)
            # the next level, breadth first so depths are minimal
            while self.later:
                self.group += 1
                t, d = self.later.popleft()
                if t not in self.visited:
                    self.to_visit_stack = [(t, d)]
                    break
        raise StopIteration()
