"""
Core module for cross-cutting concerns.

This module provides:
- Structured logging configuration
- Request tracing middleware
- Authentication utilities
- Common utilities
"""

from core.logging import configure_logging, get_logger
from core.auth import require_auth, get_current_user, SupabaseUser
from core.utils import dedupe_preserving_order, parse_csv_ids

__all__ = [
    "configure_logging",
    "get_logger",
    "require_auth",
    "get_current_user",
    "SupabaseUser",
    "dedupe_preserving_order",
    "parse_csv_ids",
]
