"""codesearch: semantic search over locally indexed source trees."""

__version__ = "0.1.0"
