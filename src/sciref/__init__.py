"""sciref - find supporting citations for highlighted manuscript claims."""

__version__ = "0.1.0"
