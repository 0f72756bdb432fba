"""Background agent supervision for the hog work dashboard."""

__version__ = "0.4.0"

__all__ = ["__version__"]
