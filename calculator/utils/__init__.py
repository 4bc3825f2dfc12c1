"""Utility modules for the batch quote calculator."""

from utils.numeric import as_num, num, round2

__all__ = [
    "as_num",
    "num",
    "round2",
]
