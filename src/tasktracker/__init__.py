"""Task tracker service built around a stored-routine command pipeline."""

__version__ = "0.1.0"
