"""
jobcontrol - dependency-aware job scheduling.
"""

__version__ = "0.1.0"
