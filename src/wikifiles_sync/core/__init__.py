"""Core utilities shared by the MCP layer."""
