"""User warnings and the per-chat warning policy."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from .store import WARNS_SETTINGS, WARNS_USERS, Database, DatabaseError

_log = logging.getLogger(__name__)

DEFAULT_WARN_LIMIT = 3
DEFAULT_WARN_MODE = "mute"
DEFAULT_REASON = "No Reason"
MAX_REASON_BYTES = 3000

_CACHE_KIND = "warn_settings"


@dataclass
class WarnSettings:
    """How many warnings a chat allows and what happens at the limit."""

    chat_id: int = 0
    warn_limit: int = DEFAULT_WARN_LIMIT
    warn_mode: str = DEFAULT_WARN_MODE

    def to_document(self) -> dict[str, Any]:
        """Return the stored form; an empty mode is left out."""
        doc: dict[str, Any] = {}
        if self.chat_id:
            doc["_id"] = self.chat_id
        doc["warn_limit"] = self.warn_limit
        if self.warn_mode:
            doc["warn_mode"] = self.warn_mode
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> WarnSettings:
        """Build settings from their stored form."""
        return cls(
            chat_id=int(doc.get("_id", 0) or 0),
            warn_limit=int(doc.get("warn_limit", 0) or 0),
            warn_mode=doc.get("warn_mode", "") or "",
        )


@dataclass
class Warns:
    """The warnings of one user in one chat."""

    user_id: int = 0
    chat_id: int = 0
    num_warns: int = 0
    reasons: list[str] = field(default_factory=list)

    def to_document(self) -> dict[str, Any]:
        """Return the stored form; zero fields are left out."""
        doc: dict[str, Any] = {}
        if self.user_id:
            doc["user_id"] = self.user_id
        if self.chat_id:
            doc["chat_id"] = self.chat_id
        if self.num_warns:
            doc["num_warns"] = self.num_warns
        doc["warns"] = list(self.reasons)
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> Warns:
        """Build a warning record from its stored form."""
        return cls(
            user_id=int(doc.get("user_id", 0) or 0),
            chat_id=int(doc.get("chat_id", 0) or 0),
            num_warns=int(doc.get("num_warns", 0) or 0),
            reasons=list(doc.get("warns") or []),
        )


def _prepare_reason(reason: str) -> str:
    if not reason:
        return DEFAULT_REASON
    raw = reason.encode("utf-8")
    if len(raw) > MAX_REASON_BYTES:
        return raw[:MAX_REASON_BYTES].decode("utf-8", errors="ignore")
    return reason


class WarnStore:
    """Stores warnings per user and chat, and warning settings per chat."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def settings(self, chat_id: int) -> WarnSettings:
        """Return the chat's warning settings, storing defaults when there are none."""
        cached = self._db.cache_get(_CACHE_KIND, chat_id)
        if cached is not None:
            return cached
        default = WarnSettings(chat_id=chat_id)
        try:
            doc = self._db.find_one(WARNS_SETTINGS, {"_id": chat_id})
        except DatabaseError as exc:
            _log.error("[Database][checkWarnSettings]: %d - %s", chat_id, exc)
            settings = default
        else:
            if doc is None:
                settings = default
                try:
                    self._db.update_one(WARNS_SETTINGS, {"_id": chat_id}, default.to_document())
                except DatabaseError as exc:
                    _log.error("[Database] checkWarnSettings: %s", exc)
            else:
                settings = WarnSettings.from_document(doc)
        self._db.cache_set(_CACHE_KIND, chat_id, settings)
        return settings

    def _record(self, user_id: int, chat_id: int) -> Warns:
        default = Warns(user_id=user_id, chat_id=chat_id)
        key = {"user_id": user_id, "chat_id": chat_id}
        try:
            doc = self._db.find_one(WARNS_USERS, key)
        except DatabaseError as exc:
            _log.error("[Database][checkUserWarns]: %d - %s", user_id, exc)
            return default
        if doc is None:
            try:
                self._db.update_one(WARNS_USERS, key, default.to_document())
            except DatabaseError as exc:
                _log.error("[Database] checkWarns: %s", exc)
            return default
        return Warns.from_document(doc)

    def warn(self, user_id: int, chat_id: int, reason: str) -> tuple[int, list[str]]:
        """Add a warning and return the new count and all reasons; (0, []) on failure."""
        update = {
            "$inc": {"num_warns": 1},
            "$push": {"warns": _prepare_reason(reason)},
            "$setOnInsert": {"user_id": user_id, "chat_id": chat_id},
        }
        try:
            doc = self._db.find_one_and_upsert(
                WARNS_USERS, {"user_id": user_id, "chat_id": chat_id}, update
            )
        except DatabaseError as exc:
            _log.error("[Database] WarnUser: %s", exc)
            return 0, []
        if doc is None:
            return 0, []
        record = Warns.from_document(doc)
        return record.num_warns, record.reasons

    def remove_warn(self, user_id: int, chat_id: int) -> bool:
        """Drop the latest warning; False when the user has none or on failure."""
        query = {"user_id": user_id, "chat_id": chat_id, "num_warns": {"$gt": 0}}
        try:
            if self._db.count_docs(WARNS_USERS, query) == 0:
                return False
            doc = self._db.find_one_and_upsert(
                WARNS_USERS, query, {"$inc": {"num_warns": -1}, "$pop": {"warns": 1}}
            )
        except DatabaseError as exc:
            _log.error("[Database] RemoveWarn: %s", exc)
            return False
        return doc is not None

    def reset(self, user_id: int, chat_id: int) -> bool:
        """Delete all of the user's warnings in the chat; False on failure."""
        try:
            self._db.delete_one(WARNS_USERS, {"user_id": user_id, "chat_id": chat_id})
        except DatabaseError as exc:
            _log.error("[Database] ResetUserWarns: %s", exc)
            return False
        return True

    def get_warns(self, user_id: int, chat_id: int) -> tuple[int, list[str]]:
        """Return the user's warning count and reasons in the chat."""
        record = self._record(user_id, chat_id)
        return record.num_warns, record.reasons

    def _save_settings(self, op: str, settings: WarnSettings) -> None:
        try:
            self._db.update_one(
                WARNS_SETTINGS, {"_id": settings.chat_id}, settings.to_document()
            )
        except DatabaseError as exc:
            _log.error("[Database] %s: %s", op, exc)
        self._db.cache_set(_CACHE_KIND, settings.chat_id, settings)

    def set_limit(self, chat_id: int, limit: int) -> None:
        """Set how many warnings trigger the chat's warn action."""
        settings = self.settings(chat_id)
        settings.warn_limit = limit
        self._save_settings("SetWarnLimit", settings)

    def set_mode(self, chat_id: int, mode: str) -> None:
        """Set the action taken when a user reaches the limit."""
        settings = self.settings(chat_id)
        settings.warn_mode = mode
        self._save_settings("SetWarnMode", settings)

    def count_chat_warns(self, chat_id: int) -> int:
        """Return the number of users with a warning record in the chat."""
        try:
            return self._db.count_docs(WARNS_USERS, {"chat_id": chat_id})
        except DatabaseError:
            return 0

    def reset_chat(self, chat_id: int) -> bool:
        """Delete every warning record in the chat; False on failure."""
        try:
            self._db.delete_many(WARNS_USERS, {"chat_id": chat_id})
        except DatabaseError as exc:
            _log.error("[Database] ResetAllChatWarns: %s", exc)
            return False
        return True