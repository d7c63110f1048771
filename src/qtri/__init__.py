"""QTri - Quality constrained Delaunay triangulation and Voronoi diagrams
"""

__version__ = '0.1.0.dev0'
__license__ = 'MIT License'
__author__ = 'author1_fullname'

from qtri.errors import MeshError, InvalidInput, ConfigurationError, \
    DegenerateGeometry, InternalConsistencyError, TopologyError
from qtri.delaunay.tds import NONE, SEGMENT, HOLE, HULL
from qtri.delaunay.helpers import ToPointsAndSegments
from qtri.delaunay.refine import DEFAULT_MAX_STEINER, MAX_MIN_ANGLE, \
    RefinementReport
from qtri.mesh import Mesh, MeshTriangle, MeshEdge, build_mesh, \
    build_constrained_mesh, refine, insert_point
from qtri.voronoi import Face, VoronoiDiagram, voronoi

__all__ = ["build_mesh", "build_constrained_mesh", "refine", "insert_point",
           "voronoi", "Mesh", "MeshTriangle", "MeshEdge", "VoronoiDiagram",
           "Face", "RefinementReport", "ToPointsAndSegments",
           "DEFAULT_MAX_STEINER", "MAX_MIN_ANGLE",
           "NONE", "SEGMENT", "HOLE", "HULL",
           "MeshError", "InvalidInput", "ConfigurationError",
           "DegenerateGeometry", "InternalConsistencyError", "TopologyError"]
