"""
Affine transformation of vectors at ingest and query time.
"""

__version__ = "0.3.0"
