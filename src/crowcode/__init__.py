"""crowcode: a searchable directory of AI agent skills, MCP servers, tools and plugins."""

__version__ = "0.1.0"
