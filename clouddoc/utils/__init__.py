"""
Utility functions for clouddoc.
"""

from .aws import (
    get_client,
    error_code,
    store_error,
)

__all__ = [
    "get_client",
    "error_code",
    "store_error",
]
