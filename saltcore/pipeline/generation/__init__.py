"""
Schema-validated generate-and-retry loop.
"""
