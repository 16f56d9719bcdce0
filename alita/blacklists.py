"""Per-chat blacklisted words and the action taken on them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from .store import BLACKLISTS, Database, DatabaseError

_log = logging.getLogger(__name__)

DEFAULT_ACTION = "none"
DEFAULT_REASON = "Automated Blacklisted word %s"

_CACHE_KIND = "blacklist_settings"


@dataclass
class BlacklistSettings:
    """The blacklisted triggers of a chat and what happens when one is used."""

    chat_id: int = 0
    action: str = DEFAULT_ACTION
    triggers: list[str] = field(default_factory=list)
    reason: str = DEFAULT_REASON

    def to_document(self) -> dict[str, Any]:
        """Return the stored form; empty action and reason are left out."""
        doc: dict[str, Any] = {}
        if self.chat_id:
            doc["_id"] = self.chat_id
        if self.action:
            doc["action"] = self.action
        doc["triggers"] = list(self.triggers)
        if self.reason:
            doc["reason"] = self.reason
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> BlacklistSettings:
        """Build settings from their stored form."""
        return cls(
            chat_id=int(doc.get("_id", 0) or 0),
            action=doc.get("action", "") or "",
            triggers=list(doc.get("triggers") or []),
            reason=doc.get("reason", "") or "",
        )


class BlacklistStore:
    """Stores blacklist settings per chat, with caching."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def get(self, chat_id: int) -> BlacklistSettings:
        """Return the chat's settings, storing defaults when there are none."""
        cached = self._db.cache_get(_CACHE_KIND, chat_id)
        if cached is not None:
            return cached
        default = BlacklistSettings(chat_id=chat_id)
        try:
            doc = self._db.find_one(BLACKLISTS, {"_id": chat_id})
        except DatabaseError as exc:
            _log.error("[Database][GetBlacklistSettings]: %s - %d", exc, chat_id)
            settings = default
        else:
            if doc is None:
                settings = default
                try:
                    self._db.update_one(BLACKLISTS, {"_id": chat_id}, default.to_document())
                except DatabaseError as exc:
                    _log.error("[Database][GetBlacklistSettings]: %s", exc)
            else:
                settings = BlacklistSettings.from_document(doc)
        self._db.cache_set(_CACHE_KIND, chat_id, settings)
        return settings

    def _save(self, op: str, chat_id: int, settings: BlacklistSettings) -> None:
        try:
            self._db.update_one(BLACKLISTS, {"_id": chat_id}, settings.to_document())
        except DatabaseError as exc:
            _log.error("[Database] %s: %s - %d", op, exc, chat_id)
        self._db.cache_set(_CACHE_KIND, chat_id, settings)

    def add(self, chat_id: int, trigger: str) -> None:
        """Add a trigger, stored in lower case."""
        settings = self.get(chat_id)
        settings.triggers.append(trigger.lower())
        self._save("AddBlacklist", chat_id, settings)

    def remove(self, chat_id: int, trigger: str) -> None:
        """Remove the first occurrence of the lower-cased trigger, if present."""
        settings = self.get(chat_id)
        try:
            settings.triggers.remove(trigger.lower())
        except ValueError:
            pass
        self._save("RemoveBlacklist", chat_id, settings)

    def remove_all(self, chat_id: int) -> None:
        """Clear every trigger; the action and reason stay."""
        settings = self.get(chat_id)
        settings.triggers = []
        self._save("RemoveBlacklist", chat_id, settings)

    def set_action(self, chat_id: int, action: str) -> None:
        """Set the action taken on a trigger, stored in lower case."""
        settings = self.get(chat_id)
        settings.action = action.lower()
        self._save("ChangeBlacklistAction", chat_id, settings)

    def stats(self) -> tuple[int, int]:
        """Return the number of triggers and the number of chats that have any."""
        try:
            docs = self._db.find_all(BLACKLISTS, {})
        except DatabaseError as exc:
            _log.error("Failed to load blacklist stats: %s", exc)
            return 0, 0
        triggers = 0
        chats = 0
        for doc in docs:
            count = len(doc.get("triggers") or [])
            triggers += count
            if count > 0:
                chats += 1
        return triggers, chats