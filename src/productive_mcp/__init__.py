"""Productive.io MCP Server - Model Context Protocol integration.

This package exposes a Productive.io organization to AI assistants over MCP,
behind a single rate-limited API gateway.

Modules:
- server: stdio MCP server implementation
- client: rate-limited Productive.io API client
- rate_limiter: fixed-window request limiter
- tools: MCP tool definitions
- handlers: tool implementation handlers
- formatters: response formatting utilities
- discovery: workspace config setup CLI
"""

__version__ = "1.0.0"

from .client import ProductiveClient
from .errors import ConfigurationError, ErrorKind, ProductiveAPIError
from .rate_limiter import RateLimiter

__all__ = [
    "ConfigurationError",
    "ErrorKind",
    "ProductiveAPIError",
    "ProductiveClient",
    "RateLimiter",
    "__version__",
]
