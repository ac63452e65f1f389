"""
Sermon angles and outlines.
"""
