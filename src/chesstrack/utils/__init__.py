"""Utility exports for the chesstrack package."""

from .logger import get_logger
from .now import Now
from .to_int import to_int

__all__ = [
    "Now",
    "get_logger",
    "to_int",
]
