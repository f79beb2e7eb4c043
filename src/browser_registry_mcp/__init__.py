"""MCP server exposing a session-scoped registry of browsers, pages and elements."""

__version__ = "0.1.0"
