"""
PulseTracker: team productivity and health scoring.
"""

__version__ = "0.1.0"
