"""Bidirectional sync between wiki pages and git-versioned Markdown files."""

__version__ = "0.4.0"
