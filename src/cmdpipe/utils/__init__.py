"""
Utility functions for the cmdpipe package.
"""

from .logger import get_logger, set_logger
from .security import is_sensitive_field, mask_sensitive_data, mask_sensitive_value

__all__ = [
    "get_logger",
    "set_logger",
    "is_sensitive_field",
    "mask_sensitive_data",
    "mask_sensitive_value",
]
