"""Errors surfaced by the query service and MCP server."""


class InvalidQueryError(ValueError):
    """Search query is empty or whitespace only."""


class InvalidArgumentError(ValueError):
    """A tool argument is missing or malformed."""


class ServerConfigError(ValueError):
    """Server configuration names neither snapshot files nor pre-loaded data."""
