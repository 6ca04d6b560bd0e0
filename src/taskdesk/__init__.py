"""taskdesk: task tracking between users, served as MCP tools behind a bearer token."""

__version__ = "0.1.0"
