"""Users connecting to chats so they can manage them from a private conversation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, TypeVar

from .store import CONNECTION, CONNECTION_SETTINGS, Database, DatabaseError

_log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Connection:
    """Which chat a user is connected to, and whether the connection is active."""

    user_id: int = 0
    chat_id: int = 0
    connected: bool = False

    def to_document(self) -> dict[str, Any]:
        """Return the stored form; a zero user or chat id is left out."""
        doc: dict[str, Any] = {}
        if self.user_id:
            doc["_id"] = self.user_id
        if self.chat_id:
            doc["chat_id"] = self.chat_id
        doc["connected"] = self.connected
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> Connection:
        """Build a connection from its stored form."""
        return cls(
            user_id=int(doc.get("_id", 0) or 0),
            chat_id=int(doc.get("chat_id", 0) or 0),
            connected=bool(doc.get("connected", False)),
        )


@dataclass
class ConnectionSettings:
    """Whether users may connect to a chat."""

    chat_id: int = 0
    allow_connect: bool = False

    def to_document(self) -> dict[str, Any]:
        """Return the stored form."""
        doc: dict[str, Any] = {}
        if self.chat_id:
            doc["_id"] = self.chat_id
        doc["can_connect"] = self.allow_connect
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> ConnectionSettings:
        """Build settings from their stored form."""
        return cls(
            chat_id=int(doc.get("_id", 0) or 0),
            allow_connect=bool(doc.get("can_connect", False)),
        )


class ConnectionStore:
    """Stores user connections and per-chat connection permissions."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def _load(
        self,
        op: str,
        name: str,
        key: int,
        default: Any,
        from_document: Callable[[Mapping[str, Any]], T],
    ) -> T:
        try:
            doc = self._db.find_one(name, {"_id": key})
        except DatabaseError as exc:
            _log.error("[Database] %s: %d - %s", op, key, exc)
            return default
        if doc is None:
            try:
                self._db.update_one(name, {"_id": key}, default.to_document())
            except DatabaseError as exc:
                _log.error("[Database] %s: %d - %s", op, key, exc)
            return default
        return from_document(doc)

    def _save_connection(self, op: str, connection: Connection) -> bool:
        try:
            self._db.update_one(
                CONNECTION, {"_id": connection.user_id}, connection.to_document()
            )
        except DatabaseError as exc:
            _log.error("[Database] %s: %s - %d", op, exc, connection.user_id)
            return False
        return True

    def chat_settings(self, chat_id: int) -> ConnectionSettings:
        """Return the chat's connection settings, storing defaults when there are none."""
        return self._load(
            "GetChatConnectionSetting",
            CONNECTION_SETTINGS,
            chat_id,
            ConnectionSettings(chat_id=chat_id, allow_connect=False),
            ConnectionSettings.from_document,
        )

    def toggle_allow_connect(self, chat_id: int, pref: bool) -> None:
        """Allow or forbid users to connect to the chat."""
        settings = self.chat_settings(chat_id)
        settings.allow_connect = pref
        try:
            self._db.update_one(
                CONNECTION_SETTINGS, {"_id": chat_id}, settings.to_document()
            )
        except DatabaseError as exc:
            _log.error("[Database] ToggleAllowConnect: %d - %s", chat_id, exc)

    def user_connection(self, user_id: int) -> Connection:
        """Return the user's connection, storing a disconnected one when there is none."""
        return self._load(
            "GetUserConnectionSetting",
            CONNECTION,
            user_id,
            Connection(user_id=user_id, connected=False),
            Connection.from_document,
        )

    def connect(self, user_id: int, chat_id: int) -> None:
        """Connect the user to the chat."""
        connection = self.user_connection(user_id)
        connection.connected = True
        connection.chat_id = chat_id
        self._save_connection("ConnectId", connection)

    def disconnect(self, user_id: int) -> None:
        """Mark the user as disconnected; the last chat is remembered."""
        connection = self.user_connection(user_id)
        connection.connected = False
        self._save_connection("DisconnectId", connection)

    def reconnect(self, user_id: int) -> int:
        """Reconnect the user to the last chat and return its id, 0 on failure."""
        connection = self.user_connection(user_id)
        connection.connected = True
        if not self._save_connection("ReconnectId", connection):
            return 0
        return connection.chat_id

    def stats(self) -> tuple[int, int]:
        """Return the number of connected users and of chats allowing connections."""
        try:
            chats = self._db.count_docs(CONNECTION_SETTINGS, {"can_connect": True})
        except DatabaseError as exc:
            _log.error("%s", exc)
            return 0, 0
        try:
            users = self._db.count_docs(CONNECTION, {"connected": True})
        except DatabaseError as exc:
            _log.error("%s", exc)
            return 0, chats
        return users, chats