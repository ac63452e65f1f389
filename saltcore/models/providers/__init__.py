"""
Vendor adapters. Chat vendors implement ChatProvider, job vendors JobProvider.
"""
