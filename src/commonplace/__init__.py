"""Commonplace: community membership and engagement consistency engine."""

__version__ = "0.1.0"
