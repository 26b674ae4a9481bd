"""Drive Monitor: scheduled change detection for shared folders."""

__version__ = "1.0.0"
