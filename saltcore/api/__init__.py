"""
FastAPI application layer for the Salt Creative generation core.

This module exposes the poster, sermon, media and writing pipelines over HTTP.
Routes only translate requests into pipeline calls and render the results.
"""
