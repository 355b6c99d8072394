"""chatrecall — analyze chat exports day by day, cache every result."""

__version__ = "0.1.0"
