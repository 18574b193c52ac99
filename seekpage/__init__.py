"""Keyset (seek) pagination for JSON document collections."""

__version__ = "1.0.0"
