"""emergetime - build history and ETA estimates from emerge.log."""

__version__ = "0.1.0"
