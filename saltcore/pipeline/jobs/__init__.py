"""
Create-then-poll state machine for vendor jobs.
"""
