"""
Core infrastructure: exceptions, logging, clock, locks and background tasks.
"""
