"""rangecal: calendar date-range selection and event management over MCP."""

__version__ = "0.1.0"
