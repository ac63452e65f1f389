"""
Vendor providers, prompt templates and the task registry.
"""
