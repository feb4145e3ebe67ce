"""
The CONTROLLER layer turns model data into geometry: it assembles composite curves,
builds profile loops and drives the solid service to produce extruded solids.
"""
