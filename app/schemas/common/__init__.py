"""
Common schema building blocks.
"""

from app.schemas.common.base import BaseRequestSchema, BaseSchema

__all__ = [
    "BaseRequestSchema",
    "BaseSchema",
]
