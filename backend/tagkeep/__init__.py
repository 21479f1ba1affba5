"""Path-tracking hierarchical tags for local files and folders."""

__version__ = "0.3.0"
