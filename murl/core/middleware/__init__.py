"""
Core middleware exports.

This module provides centralized access to all middleware components.
"""

from .access_log import AccessLogMiddleware

__all__ = ["AccessLogMiddleware"]
