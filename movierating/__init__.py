"""JSON HTTP backend for browsing, searching and rating movies held in an in-memory table."""

__version__ = "0.1.0"

__all__ = ["__version__"]