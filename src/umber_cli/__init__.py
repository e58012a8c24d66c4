"""umber-cli: import repository files into a NodeBB forum."""

__version__ = "0.4.0"
