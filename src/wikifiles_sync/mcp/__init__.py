"""MCP stdio server exposing the sync engine's operator entry points."""
