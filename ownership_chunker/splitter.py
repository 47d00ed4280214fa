"""
Page range partitioning for splitting documents into chunks.
"""

from typing import List

from .data_models import PageRange


def compute_page_ranges(total_pages: int, pages_per_file: int) -> List[PageRange]:
    """
    Partition ``total_pages`` pages into contiguous ranges.

    Args:
        total_pages: Number of pages in the document (>= 0)
        pages_per_file: Maximum number of pages per range (>= 1)

    Returns:
        Ordered, non-overlapping ranges covering [0, total_pages). Every range
        except the last holds exactly ``pages_per_file`` pages. An empty list
        means the document does not need to be split.
    """
    if pages_per_file < 1:
        raise ValueError(f"pages_per_file must be at least 1, got {pages_per_file}")
    if total_pages < 0:
        raise ValueError(f"total_pages must not be negative, got {total_pages}")

    if total_pages <= pages_per_file:
        return []

    return [
        PageRange(start, min(start + pages_per_file, total_pages))
        for start in range(0, total_pages, pages_per_file)
    ]


class PageSplitter:
    """
    Splits a document's pages into ranges of a fixed maximum size.
    """

    def __init__(self, pages_per_file: int = 50):
        """
        Initialize the splitter.

        Args:
            pages_per_file: Number of pages per chunk (default: 50)
        """
        if pages_per_file < 1:
            raise ValueError(f"pages_per_file must be at least 1, got {pages_per_file}")
        self.pages_per_file = pages_per_file

    def needs_split(self, total_pages: int) -> bool:
        return total_pages > self.pages_per_file

    def split(self, total_pages: int) -> List[PageRange]:
        return compute_page_ranges(total_pages, self.pages_per_file)
