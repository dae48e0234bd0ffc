"""Утилиты для генератора"""

from .naming import (
    to_snake_case,
    to_pascal_case,
    to_identifier,
)

__all__ = [
    "to_snake_case",
    "to_pascal_case",
    "to_identifier",
]
