"""Oura sleep trends: fetch, reconcile and smooth daily health metrics."""

__version__ = "1.0.0"
