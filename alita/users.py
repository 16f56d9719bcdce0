"""Known users, their names and preferred language."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .store import USERS, Database, DatabaseError

_log = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"

_CACHE_KIND = "user"


@dataclass
class User:
    """A user the bot has seen."""

    user_id: int = 0
    username: str = ""
    name: str = ""
    language: str = ""

    def to_document(self) -> dict[str, Any]:
        """Return the stored form."""
        doc: dict[str, Any] = {}
        if self.user_id:
            doc["_id"] = self.user_id
        doc["username"] = self.username
        doc["name"] = self.name
        doc["language"] = self.language
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> User:
        """Build a user from the stored form."""
        return cls(
            user_id=int(doc.get("_id", 0) or 0),
            username=doc.get("username", "") or "",
            name=doc.get("name", "") or "",
            language=doc.get("language", "") or "",
        )


class UserStore:
    """Stores users, with caching."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def get(self, user_id: int) -> User | None:
        """Return the stored user, None if unknown, a bare user on failure."""
        cached = self._db.cache_get(_CACHE_KIND, user_id)
        if cached is not None:
            return cached
        try:
            doc = self._db.find_one(USERS, {"_id": user_id})
        except DatabaseError as exc:
            _log.error("[Database] checkUserInfo: %s - %d", exc, user_id)
            user: User | None = User(user_id=user_id)
        else:
            user = None if doc is None else User.from_document(doc)
        if user is not None:
            self._db.cache_set(_CACHE_KIND, user_id, user)
        return user

    def ensure_bot(self, bot_id: int, username: str, first_name: str) -> None:
        """Store the bot's own name and username."""
        bot = User(user_id=bot_id, username=username, name=first_name)
        try:
            self._db.update_one(USERS, {"_id": bot_id}, bot.to_document())
        except DatabaseError as exc:
            _log.error("[Database] EnsureBotInDb: %s", exc)
        _log.info("[Database] Bot Updated in Database!")

    def update(self, user_id: int, username: str, name: str) -> User | None:
        """Store the user's names, creating the user with English if new."""
        update = {
            "$set": {"username": username, "name": name},
            "$setOnInsert": {"_id": user_id, "language": DEFAULT_LANGUAGE},
        }
        try:
            doc = self._db.find_one_and_upsert(USERS, {"_id": user_id}, update)
        except DatabaseError as exc:
            _log.error("[Database] UpdateUser: %s - %d", exc, user_id)
            return None
        if doc is None:
            return None
        user = User.from_document(doc)
        self._db.cache_set(_CACHE_KIND, user_id, user)
        _log.info("[Database] UpdateUser: %d", user_id)
        return user

    def id_by_username(self, username: str) -> int:
        """Return the id of the user with that exact username, 0 if unknown."""
        try:
            doc = self._db.find_one(USERS, {"username": username})
        except DatabaseError as exc:
            _log.error("[Database] GetUserIdByUserName: %s", exc)
            return 0
        if doc is None:
            return 0
        user_id = User.from_document(doc).user_id
        _log.info("[Database] GetUserIdByUserName: %d", user_id)
        return user_id

    def info_by_id(self, user_id: int) -> tuple[str, str, bool]:
        """Return the username, name and whether the user is known."""
        user = self.get(user_id)
        if user is None:
            return "", "", False
        _log.debug("%s", user)
        return user.username, user.name, True

    def stats(self) -> int:
        """Return the number of stored users."""
        try:
            return self._db.count_docs(USERS, {})
        except DatabaseError as exc:
            _log.error("[Database] loadStats: %s", exc)
            return 0