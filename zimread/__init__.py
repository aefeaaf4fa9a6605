"""Reading, inspection and extraction of ZIM archives."""

__version__ = "0.4.0"

__all__ = ["__version__"]