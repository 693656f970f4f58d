"""
Geni: local-first storage and cloud sync for API-testing artifacts.
"""

__version__ = "0.3.0"
