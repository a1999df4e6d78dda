"""Git-backed paste store for the local network."""

__version__ = "0.1.0"
