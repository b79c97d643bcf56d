"""Librophoto - photographed pages organized into books."""

__version__ = "0.1.0"
