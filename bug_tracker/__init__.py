"""
Bug Tracker

Issue-tracking backend: bug lifecycle, role-based access control, filtered
listings and aggregate statistics.
"""

import importlib.metadata

__version__ = importlib.metadata.version("bug-tracker")
