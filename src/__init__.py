"""iconnormalizer: deduplicate SVG icon libraries and classify them with vision LLMs."""

from iconnormalizer.version import __version__

__all__ = ["__version__"]
