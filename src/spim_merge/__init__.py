"""Merging of multi-view microscopy dataset descriptors."""

__version__ = "0.1.0"
