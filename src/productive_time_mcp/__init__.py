"""Productive Time Tracking MCP Server.

Exposes Productive.io projects, deals, services, time entries and timers as
MCP tools that return human-readable markdown text.

Run with: python -m productive_time_mcp
"""

__version__ = "1.0.0"
