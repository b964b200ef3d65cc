"""
Noticeboard Pagination Helpers

1-based page windows over a counted result set.
"""

import math
from dataclasses import dataclass


MAX_PAGE_SIZE = 100
MAX_ROW_OFFSET = 2 ** 63 - 1  # largest SQLite INTEGER


def page_offset(page: int, limit: int) -> int:
    """Row offset of the first item on a 1-based page."""
    return (page - 1) * limit


def page_count(total: int, limit: int) -> int:
    """Number of pages needed to show ``total`` items ``limit`` at a time."""
    if limit <= 0:
        return 0
    return math.ceil(total / limit)


@dataclass
class Pagination:
    """Pagination block returned alongside a list result."""
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return page_count(self.total, self.limit)

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "pages": self.pages,
        }
