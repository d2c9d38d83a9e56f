"""Local-first customer cache and directory sync for the SmartSupply portals."""

__version__ = "0.1.0"
