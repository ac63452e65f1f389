"""
Typography + scene description -> composite poster.
"""
