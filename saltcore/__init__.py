"""
Salt Creative generation core: vendor job polling, validated structured
generation and multi-stage poster/sermon pipelines.
"""

__version__ = "1.0.0"
