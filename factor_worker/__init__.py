"""
factor-worker: claim composites, run factoring engines, report factors.
"""

__version__ = "0.1.0"
