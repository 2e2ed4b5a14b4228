"""formctl — declarative form schema compiler."""

__version__ = "0.4.0"
