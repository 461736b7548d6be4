"""
Voter roster and election-day check-in engine.
"""

__version__ = "1.0.0"
