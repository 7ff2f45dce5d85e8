"""place-resolver: cached multi-provider resolution of place names to coordinates."""

__version__ = "0.1.0"
