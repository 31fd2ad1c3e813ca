"""Explainable snow day probability scoring."""

__version__ = "0.1.0"
