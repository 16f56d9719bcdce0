"""Keyword filters that make the bot reply in a chat."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from .pagination import (
    MAX_PAGE_SIZE,
    PaginatedResult,
    PaginationOptions,
    Paginator,
)
from .store import FILTERS, Button, Database, DatabaseError

_log = logging.getLogger(__name__)


@dataclass
class ChatFilter:
    """A reply sent when a keyword appears in a chat."""

    chat_id: int = 0
    keyword: str = ""
    reply: str = ""
    msg_type: int = 0
    file_id: str = ""
    no_notif: bool = False
    buttons: list[Button] = field(default_factory=list)

    def to_document(self) -> dict[str, Any]:
        """Return the stored form; empty fields are left out."""
        doc: dict[str, Any] = {}
        if self.chat_id:
            doc["chat_id"] = self.chat_id
        if self.keyword:
            doc["keyword"] = self.keyword
        if self.reply:
            doc["filter_reply"] = self.reply
        if self.msg_type:
            doc["msgtype"] = int(self.msg_type)
        if self.file_id:
            doc["fileid"] = self.file_id
        if self.no_notif:
            doc["nonotif"] = True
        if self.buttons:
            doc["filter_buttons"] = [button.to_document() for button in self.buttons]
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> ChatFilter:
        """Build a filter from its stored form."""
        return cls(
            chat_id=int(doc.get("chat_id", 0) or 0),
            keyword=doc.get("keyword", "") or "",
            reply=doc.get("filter_reply", "") or "",
            msg_type=int(doc.get("msgtype", 0) or 0),
            file_id=doc.get("fileid", "") or "",
            no_notif=bool(doc.get("nonotif", False)),
            buttons=[Button.from_document(b) for b in doc.get("filter_buttons") or []],
        )


def _as_filters(page: PaginatedResult[dict]) -> PaginatedResult[ChatFilter]:
    return PaginatedResult(
        data=[ChatFilter.from_document(doc) for doc in page.data],
        next_cursor=page.next_cursor,
        prev_cursor=page.prev_cursor,
        total_count=page.total_count,
    )


class FilterStore:
    """Stores and looks up chat filters."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def get(self, chat_id: int, keyword: str) -> ChatFilter | None:
        """Return the filter for the exact keyword; an empty one if absent, None on failure."""
        try:
            doc = self._db.find_one(FILTERS, {"chat_id": chat_id, "keyword": keyword})
        except DatabaseError as exc:
            _log.error("[Database] GetFilter: %s - %d", exc, chat_id)
            return None
        return ChatFilter() if doc is None else ChatFilter.from_document(doc)

    def list_paginated(
        self, chat_id: int, opts: PaginationOptions
    ) -> PaginatedResult[ChatFilter]:
        """Return one page of the chat's filters, by cursor or by offset."""
        paginator = Paginator(self._db.collection(FILTERS))
        chat_filter = {"chat_id": chat_id}
        if opts.cursor is None and opts.offset == 0:
            page = paginator.next_page(
                PaginationOptions(limit=opts.limit, sort_direction=1), chat_filter
            )
        elif opts.offset > 0:
            page = paginator.page_by_offset(
                PaginationOptions(offset=opts.offset, limit=opts.limit, sort_direction=1),
                chat_filter,
            )
        else:
            page = paginator.next_page(opts, chat_filter)
        return _as_filters(page)

    def keywords(self, chat_id: int) -> list[str]:
        """Return the keyword of every filter in the chat."""
        try:
            docs = self._db.find_all(FILTERS, {"chat_id": chat_id})
        except DatabaseError as exc:
            _log.error("Failed to get filters list: %s", exc)
            return []
        return [ChatFilter.from_document(doc).keyword for doc in docs]

    def exists(self, chat_id: int, keyword: str) -> bool:
        """Whether a filter exists for the lower-cased keyword."""
        try:
            count = self._db.count_docs(
                FILTERS, {"chat_id": chat_id, "keyword": keyword.lower()}
            )
        except DatabaseError as exc:
            _log.error("[Database][DoesFilterExists]: %d - %s", chat_id, exc)
            return False
        return count > 0

    def add(
        self,
        chat_id: int,
        keyword: str,
        reply_text: str,
        file_id: str,
        buttons: Iterable[Button],
        msg_type: int,
    ) -> bool:
        """Insert a filter unless one exists; True when the stored filter has this keyword."""
        update = {
            "$setOnInsert": {
                "chat_id": chat_id,
                "keyword": keyword,
                "filter_reply": reply_text,
                "msgtype": int(msg_type),
                "fileid": file_id,
                "filter_buttons": [button.to_document() for button in buttons],
            }
        }
        try:
            doc = self._db.find_one_and_upsert(
                FILTERS, {"chat_id": chat_id, "keyword": keyword}, update
            )
        except DatabaseError as exc:
            _log.error("[Database][AddFilter]: %d - %s", chat_id, exc)
            return False
        if doc is None:
            return False
        stored = ChatFilter.from_document(doc)
        return stored.chat_id == chat_id and stored.keyword == keyword

    def remove(self, chat_id: int, keyword: str) -> bool:
        """Delete the filter with the exact keyword; True if one was deleted."""
        if keyword not in self.keywords(chat_id):
            return False
        try:
            return self._db.delete_one(FILTERS, {"chat_id": chat_id, "keyword": keyword}) > 0
        except DatabaseError as exc:
            _log.error("[Database][RemoveFilter]: %d - %s", chat_id, exc)
            return False

    def remove_all(self, chat_id: int) -> int:
        """Delete every filter in the chat; return how many were deleted."""
        try:
            return self._db.delete_many(FILTERS, {"chat_id": chat_id})
        except DatabaseError as exc:
            _log.error("[Database][RemoveAllFilters]: %d - %s", chat_id, exc)
            return 0

    def count(self, chat_id: int) -> int:
        """Number of filters in the chat, 0 on failure."""
        try:
            return self._db.count_docs(FILTERS, {"chat_id": chat_id})
        except DatabaseError as exc:
            _log.error("[Database][CountFilters]: %d - %s", chat_id, exc)
            return 0

    def stats(self) -> tuple[int, int]:
        """Return the number of filters and the number of chats that have any."""
        paginator = Paginator(self._db.collection(FILTERS))
        total = 0
        chats: set[Any] = set()
        cursor: Any = None
        while True:
            try:
                page = paginator.next_page(
                    PaginationOptions(cursor=cursor, limit=MAX_PAGE_SIZE, sort_direction=1)
                )
            except Exception as exc:
                _log.error("Failed to load filter stats: %s", exc)
                break
            if not page.data:
                break
            for doc in page.data:
                total += 1
                chats.add(doc.get("chat_id", 0))
            cursor = page.next_cursor
        return total, len(chats)