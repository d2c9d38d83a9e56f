# smartsupply/utils/cache/__init__.py
"""
In-memory cache structures shared by the services.
"""

from .working_set import WorkingSet

__all__ = ["WorkingSet"]
