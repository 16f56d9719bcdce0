"""Per-chat admin settings such as anonymous admin mode."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .store import ADMIN_SETTINGS, Database, DatabaseError

_log = logging.getLogger(__name__)

_CACHE_KIND = "admin_settings"


@dataclass
class AdminSettings:
    """Admin-related settings of one chat."""

    chat_id: int = 0
    anon_admin: bool = False

    def to_document(self) -> dict[str, Any]:
        """Return the stored form."""
        doc: dict[str, Any] = {}
        if self.chat_id:
            doc["_id"] = self.chat_id
        doc["anon_admin"] = self.anon_admin
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> AdminSettings:
        """Build settings from their stored form."""
        return cls(
            chat_id=int(doc.get("_id", 0) or 0),
            anon_admin=bool(doc.get("anon_admin", False)),
        )


class AdminStore:
    """Stores admin settings per chat, with caching."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def get(self, chat_id: int) -> AdminSettings:
        """Return the chat's settings, storing defaults when there are none."""
        cached = self._db.cache_get(_CACHE_KIND, chat_id)
        if cached is not None:
            return cached
        default = AdminSettings(chat_id=chat_id, anon_admin=False)
        try:
            doc = self._db.find_one(ADMIN_SETTINGS, {"_id": chat_id})
        except DatabaseError as exc:
            _log.error("[Database][checkAdminSetting]: %s", exc)
            settings = default
        else:
            if doc is None:
                settings = default
                try:
                    self._db.update_one(
                        ADMIN_SETTINGS, {"_id": chat_id}, default.to_document()
                    )
                except DatabaseError as exc:
                    _log.error("[Database][checkAdminSetting]: %s", exc)
            else:
                settings = AdminSettings.from_document(doc)
        self._db.cache_set(_CACHE_KIND, chat_id, settings)
        return settings

    def set_anon_admin(self, chat_id: int, value: bool) -> None:
        """Turn anonymous admin mode on or off for the chat."""
        settings = self.get(chat_id)
        settings.anon_admin = value
        try:
            self._db.update_one(ADMIN_SETTINGS, {"_id": chat_id}, settings.to_document())
        except DatabaseError as exc:
            _log.error("[Database] SetAnonAdminMode: %s - %d", exc, chat_id)
        self._db.cache_set(_CACHE_KIND, chat_id, settings)