"""
Single-shot writing tasks.
"""
