"""MongoDB access with retries, slow-query logging and a settings cache."""

from __future__ import annotations

import copy
import logging
import random
import threading
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Iterable, Mapping, MutableMapping, TypeVar

from cachetools import TTLCache
from pymongo import MongoClient, ReturnDocument

from .config import Settings

_log = logging.getLogger(__name__)

T = TypeVar("T")

RETRY_ATTEMPTS = 3
SLOW_QUERY_SECONDS = 0.1
CACHE_TTL_SECONDS = 600
CACHE_MAX_SIZE = 10_000
CONNECT_TIMEOUT_MS = 10_000

ADMIN_SETTINGS = "admin"
BLACKLISTS = "blacklists"
PINS = "pins"
USERS = "users"
REPORT_CHAT_SETTINGS = "report_chat_settings"
REPORT_USER_SETTINGS = "report_user_settings"
DEVS = "devs"
CHATS = "chats"
CHANNELS = "channels"
ANTIFLOOD_SETTINGS = "antiflood_settings"
CONNECTION = "connection"
CONNECTION_SETTINGS = "connection_settings"
DISABLE = "disable"
RULES = "rules"
WARNS_SETTINGS = "warns_settings"
WARNS_USERS = "warns_users"
GREETINGS = "greetings"
LOCKS = "locks"
FILTERS = "filters"
NOTES = "notes"
NOTES_SETTINGS = "notes_settings"
CAPTCHAS = "captchas"
CAPTCHA_CHALLENGES = "captcha_challenges"

# (collection, ((keys, unique), ...)) in creation order.
_INDEX_SPECS: tuple[tuple[str, tuple[tuple[list[tuple[str, int]], bool], ...]], ...] = (
    (
        FILTERS,
        (
            ([("chat_id", 1), ("keyword", 1)], True),
            ([("_id", 1)], False),
            ([("chat_id", 1), ("_id", 1)], False),
        ),
    ),
    (
        NOTES,
        (
            ([("chat_id", 1), ("note_name", 1)], True),
            ([("_id", 1)], False),
            ([("chat_id", 1), ("_id", 1)], False),
        ),
    ),
    (WARNS_USERS, (([("user_id", 1), ("chat_id", 1)], True),)),
    (USERS, (([("username", 1)], True), ([("user_id", 1)], True))),
    (CHATS, (([("chat_id", 1)], True), ([("chat_type", 1)], False))),
    (CAPTCHAS, (([("user_id", 1), ("chat_id", 1)], False), ([("message_id", 1)], False))),
    (ADMIN_SETTINGS, (([("user_id", 1), ("chat_id", 1)], True),)),
    (ANTIFLOOD_SETTINGS, (([("user_id", 1), ("chat_id", 1)], False),)),
    (BLACKLISTS, (([("chat_id", 1), ("trigger", 1)], True),)),
    (GREETINGS, (([("chat_id", 1)], False),)),
    (LOCKS, (([("chat_id", 1)], False),)),
    (REPORT_CHAT_SETTINGS, (([("chat_id", 1)], False),)),
    (RULES, (([("chat_id", 1)], False),)),
)


class MessageType(IntEnum):
    """Kinds of content a saved reply can carry."""

    TEXT = 1
    STICKER = 2
    DOCUMENT = 3
    PHOTO = 4
    AUDIO = 5
    VOICE = 6
    VIDEO = 7
    VIDEO_NOTE = 8


@dataclass
class Button:
    """A link button attached to a message."""

    name: str = ""
    url: str = ""
    same_line: bool = False

    def to_document(self) -> dict[str, Any]:
        """Return the stored form; empty name and url are left out."""
        doc: dict[str, Any] = {}
        if self.name:
            doc["name"] = self.name
        if self.url:
            doc["url"] = self.url
        doc["btn_sameline"] = self.same_line
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> Button:
        """Build a button from its stored form."""
        return cls(
            name=doc.get("name", "") or "",
            url=doc.get("url", "") or "",
            same_line=bool(doc.get("btn_sameline", False)),
        )


class DatabaseError(Exception):
    """A database operation failed after all retries."""


def retry(
    fn: Callable[[], T],
    attempts: int = RETRY_ATTEMPTS,
    sleep: Callable[[float], Any] = time.sleep,
) -> T:
    """Call fn until it succeeds, up to attempts times, pausing 50-150 ms between tries.

    The exception of the last attempt is raised if none succeeds.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    last: BaseException | None = None
    for attempt in range(attempts):
        try:
            return fn()
        except Exception as exc:  # any failure of the operation is retried
            last = exc
            if attempt < attempts - 1:
                sleep(random.randint(50, 149) / 1000)
    assert last is not None
    raise last


class Database:
    """Wraps a document database with retries, timing and a shared TTL cache."""

    def __init__(self, mongo_db: Any, cache: MutableMapping | None = None) -> None:
        self._db = mongo_db
        if cache is None:
            cache = TTLCache(maxsize=CACHE_MAX_SIZE, ttl=CACHE_TTL_SECONDS)
        self._cache = cache
        self._cache_lock = threading.Lock()
        self.retry_attempts = RETRY_ATTEMPTS
        self.retry_sleep: Callable[[float], Any] = time.sleep

    def collection(self, name: str) -> Any:
        """Return the collection of that name."""
        return self._db[name]

    def cache_get(self, kind: str, key: Any) -> Any:
        """Return a copy of a cached value, or None when absent or expired."""
        with self._cache_lock:
            value = self._cache.get((kind, key))
        return None if value is None else copy.deepcopy(value)

    def cache_set(self, kind: str, key: Any, value: Any) -> None:
        """Cache a copy of value under (kind, key)."""
        stored = copy.deepcopy(value)
        with self._cache_lock:
            self._cache[(kind, key)] = stored

    def _run(self, op: str, name: str, filter: Mapping[str, Any], fn: Callable[[], T]) -> T:
        start = time.monotonic()
        try:
            return retry(fn, self.retry_attempts, self.retry_sleep)
        except Exception as exc:
            _log.error("[Database][%s]: %s", op, exc)
            raise DatabaseError(f"{op} on {name} failed: {exc}") from exc
        finally:
            elapsed = time.monotonic() - start
            if elapsed > SLOW_QUERY_SECONDS:
                _log.warning("[Database][SLOW][%s] %s %s took %.3fs", op, name, filter, elapsed)

    def update_one(self, name: str, filter: Mapping[str, Any], data: Mapping[str, Any]) -> None:
        """Set the fields of data on the matching document, inserting it if absent."""
        coll = self.collection(name)
        self._run(
            "updateOne",
            name,
            filter,
            lambda: coll.update_one(dict(filter), {"$set": dict(data)}, upsert=True),
        )

    def find_one(self, name: str, filter: Mapping[str, Any]) -> dict[str, Any] | None:
        """Return the first matching document, or None."""
        coll = self.collection(name)
        return self._run("findOne", name, filter, lambda: coll.find_one(dict(filter)))

    def count_docs(self, name: str, filter: Mapping[str, Any] | None = None) -> int:
        """Count the matching documents."""
        coll = self.collection(name)
        query = dict(filter or {})
        return int(self._run("countDocs", name, query, lambda: coll.count_documents(query)))

    def find_all(self, name: str, filter: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        """Return every matching document."""
        coll = self.collection(name)
        query = dict(filter or {})
        return self._run("findAll", name, query, lambda: list(coll.find(query)))

    def delete_one(self, name: str, filter: Mapping[str, Any]) -> int:
        """Delete the first matching document; return how many were deleted."""
        coll = self.collection(name)
        result = self._run("deleteOne", name, filter, lambda: coll.delete_one(dict(filter)))
        return int(result.deleted_count)

    def delete_many(self, name: str, filter: Mapping[str, Any]) -> int:
        """Delete every matching document; return how many were deleted."""
        coll = self.collection(name)
        result = self._run("deleteMany", name, filter, lambda: coll.delete_many(dict(filter)))
        return int(result.deleted_count)

    def find_one_and_upsert(
        self, name: str, filter: Mapping[str, Any], update: Mapping[str, Any]
    ) -> dict[str, Any] | None:
        """Apply update atomically, inserting if nothing matches; return the document after."""
        coll = self.collection(name)
        return self._run(
            "findOneAndUpsert",
            name,
            filter,
            lambda: coll.find_one_and_update(
                dict(filter),
                dict(update),
                upsert=True,
                return_document=ReturnDocument.AFTER,
            ),
        )

    def create_indexes(self) -> list[str]:
        """Create the indexes every collection uses; return the collections that failed."""
        _log.info("Creating database indexes...")
        failed: list[str] = []
        for name, indexes in _INDEX_SPECS:
            coll = self.collection(name)
            try:
                for keys, unique in indexes:
                    if unique:
                        coll.create_index(keys, unique=True)
                    else:
                        coll.create_index(keys)
            except Exception as exc:
                _log.warning("[Database][Index] Failed to create %s indexes: %s", name, exc)
                failed.append(name)
        _log.info("Done creating database indexes!")
        return failed


def _iter_collections() -> Iterable[str]:
    return (name for name, _ in _INDEX_SPECS)


def connect(settings: Settings) -> Database:
    """Open the database named in settings and create its indexes."""
    if not settings.database_uri:
        raise DatabaseError("no database URI configured")
    idle = settings.mongo_max_conn_idle_time.total_seconds()
    try:
        client: MongoClient = MongoClient(
            settings.database_uri,
            maxPoolSize=settings.mongo_max_pool_size,
            minPoolSize=settings.mongo_min_pool_size,
            maxIdleTimeMS=int(idle * 1000) if idle > 0 else None,
            connectTimeoutMS=CONNECT_TIMEOUT_MS,
            serverSelectionTimeoutMS=CONNECT_TIMEOUT_MS,
        )
    except Exception as exc:
        _log.error("[Database][Connect]: %s", exc)
        raise DatabaseError(f"cannot connect: {exc}") from exc
    _log.info("Opening Database Collections...")
    database = Database(client[settings.main_db_name])
    _log.debug("[DB] Collections: %s", ", ".join(_iter_collections()))
    _log.info("Done opening all database collections!")
    database.create_indexes()
    return database