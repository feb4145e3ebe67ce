"""
Geometric reconstruction engine: composite curve assembly, parametric profiles and
layered extrusion of solids.
"""
__version__ = "0.1.0"
