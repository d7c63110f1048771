'''
Exceptions raised by the triangulation engine
'''


class MeshError(ValueError):
    """Base class of all errors raised by qtri"""


class InvalidInput(MeshError):
    """The input points or boundaries cannot be triangulated as given
    (non-finite coordinate, duplicate point, too few points, degenerate or
    self-intersecting boundary)
    """


class ConfigurationError(MeshError):
    """A refinement parameter is out of its valid range"""


class DegenerateGeometry(MeshError):
    """All input points are collinear, no triangle can be formed"""


class InternalConsistencyError(MeshError):
    """The triangulation data structure is corrupt (engine defect)"""


class TopologyError(InternalConsistencyError):
    """An edit primitive was asked for an impossible edit"""
