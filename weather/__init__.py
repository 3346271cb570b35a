"""Weather MCP server backed by the National Weather Service API."""
