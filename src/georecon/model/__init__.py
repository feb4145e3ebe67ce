"""
The MODEL layer contains pure data structures and geometry evaluation.
It has NO knowledge of the solid kernel (gmsh) or of how profiles are built.
It deals with Curves, Loops, Profiles and Materials.
"""
