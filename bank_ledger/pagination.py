"""
Pagination helpers shared by account and transaction listings.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass
class PageRequest:
    """Requested page; out-of-range values are normalized, never rejected"""
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = MAX_PAGE_SIZE

    def __post_init__(self):
        if self.page <= 0:
            self.page = 1
        if self.page_size <= 0:
            self.page_size = DEFAULT_PAGE_SIZE
        if self.page_size > self.max_page_size:
            self.page_size = self.max_page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass
class Page(Generic[T]):
    """One page of results plus totals"""
    items: List[T] = field(default_factory=list)
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    total: int = 0

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.page_size) if self.page_size else 0

    def to_dict(self, item_serializer=None) -> Dict[str, Any]:
        items = [item_serializer(item) for item in self.items] if item_serializer else list(self.items)
        return {
            "data": items,
            "page": self.page,
            "page_size": self.page_size,
            "total": self.total,
            "total_pages": self.total_pages,
        }


def paginate(items: Sequence[T], request: PageRequest) -> Page[T]:
    """Slice an already filtered and ordered sequence"""
    window = list(items[request.offset:request.offset + request.page_size])
    return Page(items=window, page=request.page, page_size=request.page_size, total=len(items))
