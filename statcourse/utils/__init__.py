# statcourse/utils/__init__.py
"""Utility functions module."""
from .formula import FormulaParser, RandomTerm, split_random_terms

__all__ = [
    "FormulaParser",
    "RandomTerm",
    "split_random_terms",
]
