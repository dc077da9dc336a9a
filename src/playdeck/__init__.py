"""
playdeck - local media-library player core
"""

__version__ = "1.0.0"
