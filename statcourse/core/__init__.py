# statcourse/core/__init__.py
"""Core computational modules for statcourse."""
from . import bootstrap, config, intervals, quadrature

__all__ = ["bootstrap", "config", "intervals", "quadrature"]
