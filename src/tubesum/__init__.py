"""tubesum: YouTube channel digests with AI-generated summaries."""

__version__ = "0.1.0"

__all__ = ["__version__"]
