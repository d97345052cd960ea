"""
API Routers package.
"""

from . import jobcontrol

__all__ = ["jobcontrol"]
