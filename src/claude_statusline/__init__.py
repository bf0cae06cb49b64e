"""Status line for Claude CLI sessions backed by cached ccusage data."""

__version__ = "0.1.0"
