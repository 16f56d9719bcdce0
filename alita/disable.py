"""Commands that are switched off in a chat."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from .store import DISABLE, Database, DatabaseError

_log = logging.getLogger(__name__)

_CACHE_KIND = "disable_settings"


@dataclass
class DisabledCommands:
    """The disabled commands of a chat and whether their use is deleted."""

    chat_id: int = 0
    commands: list[str] = field(default_factory=list)
    should_delete: bool = False

    def to_document(self) -> dict[str, Any]:
        """Return the stored form."""
        doc: dict[str, Any] = {}
        if self.chat_id:
            doc["_id"] = self.chat_id
        doc["commands"] = list(self.commands)
        doc["should_delete"] = self.should_delete
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> DisabledCommands:
        """Build settings from their stored form."""
        return cls(
            chat_id=int(doc.get("_id", 0) or 0),
            commands=list(doc.get("commands") or []),
            should_delete=bool(doc.get("should_delete", False)),
        )


class DisableStore:
    """Stores disabled commands per chat, with caching."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def get(self, chat_id: int) -> DisabledCommands:
        """Return the chat's settings, storing defaults when there are none."""
        cached = self._db.cache_get(_CACHE_KIND, chat_id)
        if cached is not None:
            return cached
        default = DisabledCommands(chat_id=chat_id)
        try:
            doc = self._db.find_one(DISABLE, {"_id": chat_id})
        except DatabaseError as exc:
            _log.error("[Database][checkDisableSettings]: %s", exc)
            settings = default
        else:
            if doc is None:
                settings = default
                try:
                    self._db.update_one(DISABLE, {"_id": chat_id}, default.to_document())
                except DatabaseError as exc:
                    _log.error("[Database] checkDisableSettings: %d - %s", chat_id, exc)
            else:
                settings = DisabledCommands.from_document(doc)
        self._db.cache_set(_CACHE_KIND, chat_id, settings)
        return settings

    def _save(self, op: str, chat_id: int, settings: DisabledCommands) -> None:
        try:
            self._db.update_one(DISABLE, {"_id": chat_id}, settings.to_document())
        except DatabaseError as exc:
            _log.error("[Database][%s]: %s", op, exc)
        self._db.cache_set(_CACHE_KIND, chat_id, settings)

    def disable(self, chat_id: int, command: str) -> None:
        """Add the command to the chat's disabled list."""
        settings = self.get(chat_id)
        settings.commands.append(command)
        self._save("DisableCMD", chat_id, settings)

    def enable(self, chat_id: int, command: str) -> None:
        """Remove the first occurrence of the command from the disabled list."""
        settings = self.get(chat_id)
        try:
            settings.commands.remove(command)
        except ValueError:
            pass
        self._save("EnableCMD", chat_id, settings)

    def disabled_commands(self, chat_id: int) -> list[str]:
        """Return the chat's disabled commands."""
        return self.get(chat_id).commands

    def is_disabled(self, chat_id: int, command: str) -> bool:
        """Whether the command is disabled in the chat."""
        return command in self.disabled_commands(chat_id)

    def set_delete(self, chat_id: int, pref: bool) -> None:
        """Set whether uses of disabled commands are deleted."""
        settings = self.get(chat_id)
        settings.should_delete = pref
        self._save("ToggleDel", chat_id, settings)

    def should_delete(self, chat_id: int) -> bool:
        """Whether uses of disabled commands are deleted in the chat."""
        return self.get(chat_id).should_delete

    def stats(self) -> tuple[int, int]:
        """Return the number of disabled commands and of chats that disable any."""
        try:
            docs = self._db.find_all(DISABLE, {})
        except DatabaseError as exc:
            _log.error("Failed to load disable stats: %s", exc)
            return 0, 0
        commands = 0
        chats = 0
        for doc in docs:
            count = len(doc.get("commands") or [])
            commands += count
            if count > 0:
                chats += 1
        return commands, chats