"""Shared utilities for the browser registry MCP server."""

from .error_mapper import ErrorCode, error_response_for, map_error
from .guardrails import check_navigation_allowed, normalize_url, validate_domain

__all__ = [
    "ErrorCode",
    "error_response_for",
    "map_error",
    "check_navigation_allowed",
    "normalize_url",
    "validate_domain",
]
