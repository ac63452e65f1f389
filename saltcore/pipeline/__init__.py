"""
Generation pipelines and the primitives they are built from.
"""
