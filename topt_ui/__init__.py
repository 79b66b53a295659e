"""Command-line front end for task-optimizer."""

__version__ = "1.1.0"

__all__ = ["__version__"]
