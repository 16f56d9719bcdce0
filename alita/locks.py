"""Per-chat locks on message types and broader restrictions."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from .store import LOCKS, Database, DatabaseError

_log = logging.getLogger(__name__)


def _flag(key: str, lock: str) -> Any:
    return field(default=False, metadata={"key": key, "lock": lock})


class _Flags:
    """Shared stored form for groups of boolean flags."""

    def to_document(self) -> dict[str, Any]:
        """Return the stored form; only flags that are set are kept."""
        return {
            f.metadata["key"]: True
            for f in dataclasses.fields(self)  # type: ignore[arg-type]
            if getattr(self, f.name)
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any] | None) -> Any:
        """Build the flags from their stored form."""
        doc = doc or {}
        return cls(  # type: ignore[call-arg]
            **{
                f.name: bool(doc.get(f.metadata["key"], False))
                for f in dataclasses.fields(cls)  # type: ignore[arg-type]
            }
        )


@dataclass
class Permissions(_Flags):
    """Message types that are locked in a chat."""

    sticker: bool = _flag("sticker", "sticker")
    audio: bool = _flag("audio", "audio")
    voice: bool = _flag("voice", "voice")
    video: bool = _flag("video", "video")
    document: bool = _flag("document", "document")
    video_note: bool = _flag("video_note", "videonote")
    contact: bool = _flag("contact", "contact")
    photo: bool = _flag("photo", "photo")
    gif: bool = _flag("gif", "gif")
    url: bool = _flag("url", "url")
    bot: bool = _flag("bot", "bots")
    forward: bool = _flag("forward", "forward")
    game: bool = _flag("game", "game")
    location: bool = _flag("location", "location")
    arab: bool = _flag("arab_chars", "rtl")
    send_as_channel: bool = _flag("send_as_channel", "anonchannel")


@dataclass
class Restrictions(_Flags):
    """Broader restrictions in a chat."""

    messages: bool = _flag("messages", "messages")
    channel_comments: bool = _flag("channel_comments", "comments")
    media: bool = _flag("media", "media")
    other: bool = _flag("other", "other")
    previews: bool = _flag("previews", "previews")
    all: bool = _flag("all", "all")


# lock name -> (section attribute, field name)
_LOCK_TARGETS: dict[str, tuple[str, str]] = {
    **{f.metadata["lock"]: ("permissions", f.name) for f in dataclasses.fields(Permissions)},
    **{f.metadata["lock"]: ("restrictions", f.name) for f in dataclasses.fields(Restrictions)},
}


@dataclass
class Locks:
    """All lock and restriction settings of a chat."""

    chat_id: int = 0
    permissions: Permissions = field(default_factory=Permissions)
    restrictions: Restrictions = field(default_factory=Restrictions)

    def to_document(self) -> dict[str, Any]:
        """Return the stored form."""
        doc: dict[str, Any] = {}
        if self.chat_id:
            doc["_id"] = self.chat_id
        doc["permissions"] = self.permissions.to_document()
        doc["restrictions"] = self.restrictions.to_document()
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> Locks:
        """Build locks from their stored form."""
        return cls(
            chat_id=int(doc.get("_id", 0) or 0),
            permissions=Permissions.from_document(doc.get("permissions")),
            restrictions=Restrictions.from_document(doc.get("restrictions")),
        )


def map_lock_types(locks: Locks) -> dict[str, bool]:
    """Return every lock name with whether it is set."""
    return {
        name: bool(getattr(getattr(locks, section), attr))
        for name, (section, attr) in _LOCK_TARGETS.items()
    }


class LockStore:
    """Stores lock settings per chat."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def get(self, chat_id: int) -> Locks:
        """Return the chat's locks, storing an all-unlocked set when there is none."""
        default = Locks(chat_id=chat_id)
        try:
            doc = self._db.find_one(LOCKS, {"_id": chat_id})
        except DatabaseError as exc:
            _log.error("[Database][checkChatLocks]: %s", exc)
            return default
        if doc is None:
            try:
                self._db.update_one(LOCKS, {"_id": chat_id}, default.to_document())
            except DatabaseError as exc:
                _log.error("[Database] checkChatLocks: %s", exc)
            return default
        return Locks.from_document(doc)

    def update(self, chat_id: int, perm: str, value: bool) -> None:
        """Set one lock by name; unknown names change nothing."""
        locks = self.get(chat_id)
        target = _LOCK_TARGETS.get(perm)
        if target is not None:
            section, attr = target
            setattr(getattr(locks, section), attr, value)
        try:
            self._db.update_one(LOCKS, {"_id": chat_id}, locks.to_document())
        except DatabaseError as exc:
            _log.error("[Database] UpdateLock: %s", exc)

    def is_locked(self, chat_id: int, perm: str) -> bool:
        """Whether the named lock is set; False for unknown names."""
        return map_lock_types(self.get(chat_id)).get(perm, False)