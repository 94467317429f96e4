"""Vacation Portal — client core for requesting, approving and tracking leave."""

__version__ = "1.0.0"
