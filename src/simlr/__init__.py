"""Simlr - album ratings, similarity links and discussions."""

__version__ = "0.1.0"
