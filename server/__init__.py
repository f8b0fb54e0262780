"""MCP server, tool rendering and HTTP surface."""
