"""GPTeo Scanner - score websites for SEO and AI discoverability."""

__version__ = "0.1.0"
