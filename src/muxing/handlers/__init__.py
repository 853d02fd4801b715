"""
Request handlers for the demonstration endpoints.
"""

from .demo import get_echo, get_bad, get_name, get_data, get_headers, CORS_ALLOW_HEADERS

__all__ = [
    "get_echo",
    "get_bad",
    "get_name",
    "get_data",
    "get_headers",
    "CORS_ALLOW_HEADERS",
]
