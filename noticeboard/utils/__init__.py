"""Noticeboard Utilities Module."""

from .pagination import page_count, page_offset, Pagination, MAX_PAGE_SIZE
from .formatting import format_timestamp, parse_timestamp, now_us

__all__ = [
    "page_count",
    "page_offset",
    "Pagination",
    "MAX_PAGE_SIZE",
    "format_timestamp",
    "parse_timestamp",
    "now_us",
]
