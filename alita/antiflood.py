"""Per-chat anti-flood settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .store import ANTIFLOOD_SETTINGS, Database, DatabaseError

_log = logging.getLogger(__name__)

DEFAULT_FLOOD_MODE = "mute"

_CACHE_KIND = "flood_settings"


@dataclass
class FloodSettings:
    """How many consecutive messages a chat allows and what happens beyond that."""

    chat_id: int = 0
    limit: int = 0
    mode: str = DEFAULT_FLOOD_MODE
    delete_message: bool = False

    def to_document(self) -> dict[str, Any]:
        """Return the stored form; an empty mode is left out."""
        doc: dict[str, Any] = {}
        if self.chat_id:
            doc["_id"] = self.chat_id
        doc["limit"] = self.limit
        if self.mode:
            doc["mode"] = self.mode
        doc["del_msg"] = self.delete_message
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> FloodSettings:
        """Build settings from their stored form."""
        return cls(
            chat_id=int(doc.get("_id", 0) or 0),
            limit=int(doc.get("limit", 0) or 0),
            mode=doc.get("mode", "") or "",
            delete_message=bool(doc.get("del_msg", False)),
        )


class FloodStore:
    """Stores anti-flood settings per chat, with caching."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def get(self, chat_id: int) -> FloodSettings:
        """Return the chat's settings, storing defaults when there are none."""
        cached = self._db.cache_get(_CACHE_KIND, chat_id)
        if cached is not None:
            return cached
        default = FloodSettings(chat_id=chat_id, limit=0, mode=DEFAULT_FLOOD_MODE)
        try:
            doc = self._db.find_one(ANTIFLOOD_SETTINGS, {"_id": chat_id})
        except DatabaseError as exc:
            _log.error("[Database][checkFloodSetting]: %s", exc)
            settings = default
        else:
            if doc is None:
                settings = default
                try:
                    self._db.update_one(
                        ANTIFLOOD_SETTINGS, {"_id": chat_id}, default.to_document()
                    )
                except DatabaseError as exc:
                    _log.error("[Database][checkFloodSetting]: %s", exc)
            else:
                settings = FloodSettings.from_document(doc)
        self._db.cache_set(_CACHE_KIND, chat_id, settings)
        return settings

    def _upsert(
        self, op: str, chat_id: int, changes: dict[str, Any], on_insert: dict[str, Any]
    ) -> FloodSettings | None:
        update = {"$set": changes, "$setOnInsert": {"_id": chat_id, **on_insert}}
        try:
            doc = self._db.find_one_and_upsert(ANTIFLOOD_SETTINGS, {"_id": chat_id}, update)
        except DatabaseError as exc:
            _log.error("[Database] %s: %s - %d", op, exc, chat_id)
            return None
        if doc is None:
            return None
        settings = FloodSettings.from_document(doc)
        self._db.cache_set(_CACHE_KIND, chat_id, settings)
        return settings

    def set_limit(self, chat_id: int, limit: int) -> FloodSettings | None:
        """Set the message limit (0 disables); return the stored settings, None on failure."""
        return self._upsert(
            "SetFlood",
            chat_id,
            {"limit": limit},
            {"mode": DEFAULT_FLOOD_MODE, "del_msg": False},
        )

    def set_mode(self, chat_id: int, mode: str) -> FloodSettings | None:
        """Set the action taken on flooding; return the stored settings, None on failure."""
        return self._upsert(
            "SetFloodMode",
            chat_id,
            {"mode": mode},
            {"limit": 0, "del_msg": False},
        )

    def set_delete_message(self, chat_id: int, value: bool) -> FloodSettings | None:
        """Set whether flooding messages are deleted; return the stored settings."""
        return self._upsert(
            "SetFloodMsgDel",
            chat_id,
            {"del_msg": value},
            {"limit": 0, "mode": DEFAULT_FLOOD_MODE},
        )

    def stats(self) -> int:
        """Return the number of chats with anti-flood enabled."""
        counts = []
        for query in ({}, {"limit": 0}):
            try:
                counts.append(self._db.count_docs(ANTIFLOOD_SETTINGS, query))
            except DatabaseError as exc:
                _log.error("[Database] LoadAntifloodStats: %s", exc)
                counts.append(0)
        return counts[0] - counts[1]