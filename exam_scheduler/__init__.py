"""
Exam session scheduling engine.

Capacity-aware booking of exam sessions for university departments:
slot search, the booking lifecycle state machine, capacity-gated approval
and the background hold-expiry and deadline jobs.
"""

__version__ = "0.1.0"
