"""Per-chat settings for pinned channel messages."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .store import PINS, Database, DatabaseError

_log = logging.getLogger(__name__)


@dataclass
class PinSettings:
    """How the bot treats messages pinned from a linked channel."""

    chat_id: int = 0
    anti_channel_pin: bool = False
    clean_linked: bool = False

    def to_document(self) -> dict[str, Any]:
        """Return the stored form."""
        doc: dict[str, Any] = {}
        if self.chat_id:
            doc["_id"] = self.chat_id
        doc["antichannelpin"] = self.anti_channel_pin
        doc["cleanlinked"] = self.clean_linked
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> PinSettings:
        """Build settings from their stored form."""
        return cls(
            chat_id=int(doc.get("_id", 0) or 0),
            anti_channel_pin=bool(doc.get("antichannelpin", False)),
            clean_linked=bool(doc.get("cleanlinked", False)),
        )


class PinStore:
    """Stores pin settings per chat."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def get(self, chat_id: int) -> PinSettings:
        """Return the chat's settings, storing defaults when there are none."""
        default = PinSettings(chat_id=chat_id)
        try:
            doc = self._db.find_one(PINS, {"_id": chat_id})
        except DatabaseError as exc:
            _log.error("[Database] GetPinData: %s - %d", exc, chat_id)
            return default
        if doc is None:
            try:
                self._db.update_one(PINS, {"_id": chat_id}, default.to_document())
            except DatabaseError as exc:
                _log.error("[Database] GetPinData: %s - %d", exc, chat_id)
            settings = default
        else:
            settings = PinSettings.from_document(doc)
        _log.info("[Database] GetPinData: %d", chat_id)
        return settings

    def _store(self, op: str, settings: PinSettings) -> bool:
        try:
            self._db.update_one(PINS, {"_id": settings.chat_id}, settings.to_document())
        except DatabaseError as exc:
            _log.error("[Database] %s: %s - %d", op, exc, settings.chat_id)
            return False
        return True

    def set_clean_linked(self, chat_id: int, pref: bool) -> None:
        """Set clean-linked; anti-channel-pin is always switched off."""
        self._store(
            "SetCleanLinked",
            PinSettings(chat_id=chat_id, anti_channel_pin=False, clean_linked=pref),
        )

    def set_anti_channel_pin(self, chat_id: int, pref: bool) -> None:
        """Set anti-channel-pin; clean-linked is always switched off."""
        if self._store(
            "SetAntiChannelPin",
            PinSettings(chat_id=chat_id, anti_channel_pin=pref, clean_linked=False),
        ):
            _log.info("[Database] SetAntiChannelPin: %s - %d", pref, chat_id)

    def stats(self) -> tuple[int, int]:
        """Return how many chats use anti-channel-pin alone and clean-linked alone."""
        counts = []
        for query in (
            {"cleanlinked": False, "antichannelpin": True},
            {"cleanlinked": True, "antichannelpin": False},
        ):
            try:
                counts.append(self._db.count_docs(PINS, query))
            except DatabaseError as exc:
                _log.error("[Database] loadPinStats: %s", exc)
                counts.append(0)
        return counts[0], counts[1]