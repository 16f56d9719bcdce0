"""Cursor- and offset-based paging over a document collection."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Generic, Mapping, TypeVar

MAX_PAGE_SIZE = 500
DEFAULT_PAGE_SIZE = 100
MAX_OFFSET_THRESHOLD = 10_000
NO_PAGE = -1

T = TypeVar("T")


@dataclass(frozen=True)
class PaginationOptions:
    """How one page is chosen."""

    cursor: Any = None
    offset: int = 0
    limit: int = 0
    sort_direction: int = 1


@dataclass
class PaginatedResult(Generic[T]):
    """One page of results and where the neighbouring pages start."""

    data: list[T] = field(default_factory=list)
    next_cursor: Any = None
    prev_cursor: Any = None
    total_count: int = 0


def apply_safety_limits(opts: PaginationOptions) -> PaginationOptions:
    """Return options with the limit, offset and sort direction brought into range."""
    limit = opts.limit if 0 < opts.limit <= MAX_PAGE_SIZE else DEFAULT_PAGE_SIZE
    offset = 0 if opts.offset > MAX_OFFSET_THRESHOLD else opts.offset
    direction = opts.sort_direction if opts.sort_direction in (1, -1) else 1
    return dataclasses.replace(opts, limit=limit, offset=offset, sort_direction=direction)


class Paginator:
    """Reads a collection one page at a time, ordered by _id."""

    def __init__(self, collection: Any) -> None:
        self._collection = collection

    def next_page(
        self, opts: PaginationOptions, extra_filter: Mapping[str, Any] | None = None
    ) -> PaginatedResult[dict]:
        """Return the page of documents whose _id follows the cursor."""
        opts = apply_safety_limits(opts)
        query: dict[str, Any] = {}
        if opts.cursor is not None:
            query["_id"] = {"$gt": opts.cursor}
        query.update(extra_filter or {})
        docs = list(
            self._collection.find(
                query, sort=[("_id", opts.sort_direction)], limit=opts.limit
            )
        )
        next_cursor = docs[-1].get("_id") if docs else None
        return PaginatedResult(data=docs, next_cursor=next_cursor)

    def page_by_offset(
        self, opts: PaginationOptions, extra_filter: Mapping[str, Any] | None = None
    ) -> PaginatedResult[dict]:
        """Return the page starting at the offset; neighbouring offsets are -1 when absent."""
        opts = apply_safety_limits(opts)
        query: dict[str, Any] = dict(extra_filter or {})
        total = int(self._collection.count_documents(query))
        docs = list(
            self._collection.find(
                query,
                sort=[("_id", opts.sort_direction)],
                skip=opts.offset,
                limit=opts.limit,
            )
        )
        next_offset = opts.offset + opts.limit
        if next_offset >= total:
            next_offset = NO_PAGE
        prev_offset = opts.offset - opts.limit
        if prev_offset < 0:
            prev_offset = NO_PAGE
        return PaginatedResult(
            data=docs, next_cursor=next_offset, prev_cursor=prev_offset, total_count=total
        )