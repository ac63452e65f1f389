"""
Single-job media operations.
"""
