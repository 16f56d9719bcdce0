import copy
from collections import defaultdict
from types import SimpleNamespace

import pytest

from alita.store import Database
from alita.warns import (
    DEFAULT_REASON,
    DEFAULT_WARN_LIMIT,
    DEFAULT_WARN_MODE,
    MAX_REASON_BYTES,
    WarnSettings,
    Warns,
    WarnStore,
)


class FakeCollection:
    def __init__(self):
        self.docs = []
        self.fail = False

    def _check(self):
        if self.fail:
            raise RuntimeError("unavailable")

    @staticmethod
    def _matches(doc, query):
        for key, cond in query.items():
            value = doc.get(key)
            if isinstance(cond, dict):
                if "$gt" in cond and not (value is not None and value > cond["$gt"]):
                    return False
            elif value != cond:
                return False
        return True

    def _first(self, query):
        return next((d for d in self.docs if self._matches(d, query)), None)

    def _upsert(self, query, update):
        doc = self._first(query)
        if doc is None:
            doc = {k: v for k, v in query.items() if not isinstance(v, dict)}
            self.docs.append(doc)
            doc.update(copy.deepcopy(update.get("$setOnInsert", {})))
        doc.update(copy.deepcopy(update.get("$set", {})))
        for key, step in update.get("$inc", {}).items():
            doc[key] = doc.get(key, 0) + step
        for key, value in update.get("$push", {}).items():
            doc.setdefault(key, []).append(value)
        for key, side in update.get("$pop", {}).items():
            if doc.get(key):
                doc[key].pop(-1 if side == 1 else 0)
        return doc

    def find_one(self, query):
        self._check()
        doc = self._first(query)
        return copy.deepcopy(doc) if doc is not None else None

    def count_documents(self, query):
        self._check()
        return sum(1 for d in self.docs if self._matches(d, query))

    def update_one(self, query, update, upsert=False):
        self._check()
        self._upsert(query, update)
        return SimpleNamespace()

    def find_one_and_update(self, query, update, upsert=False, return_document=None):
        self._check()
        return copy.deepcopy(self._upsert(query, update))

    def delete_one(self, query):
        self._check()
        doc = self._first(query)
        if doc is not None:
            self.docs.remove(doc)
        return SimpleNamespace(deleted_count=int(doc is not None))

    def delete_many(self, query):
        self._check()
        kept = [d for d in self.docs if not self._matches(d, query)]
        removed = len(self.docs) - len(kept)
        self.docs = kept
        return SimpleNamespace(deleted_count=removed)


@pytest.fixture
def collections():
    return defaultdict(FakeCollection)


@pytest.fixture
def store(collections):
    database = Database(collections)
    database.retry_sleep = lambda _: None
    return WarnStore(database)


def test_default_settings(store):
    settings = store.settings(10)
    assert settings == WarnSettings(chat_id=10, warn_limit=DEFAULT_WARN_LIMIT, warn_mode="mute")
    assert DEFAULT_WARN_MODE == "mute"


def test_set_limit_and_mode(store, collections):
    store.set_limit(10, 5)
    store.set_mode(10, "ban")
    assert store.settings(10) == WarnSettings(chat_id=10, warn_limit=5, warn_mode="ban")
    assert collections["warns_settings"].docs[0]["warn_limit"] == 5


def test_warn_accumulates(store):
    assert store.warn(1, 10, "spam") == (1, ["spam"])
    assert store.warn(1, 10, "flood") == (2, ["spam", "flood"])
    assert store.get_warns(1, 10) == (2, ["spam", "flood"])


def test_empty_reason_defaults(store):
    count, reasons = store.warn(1, 10, "")
    assert reasons == [DEFAULT_REASON]
    assert DEFAULT_REASON == "No Reason"


def test_long_reason_truncated(store):
    _, reasons = store.warn(1, 10, "a" * (MAX_REASON_BYTES + 50))
    assert reasons[0] == "a" * MAX_REASON_BYTES


def test_remove_warn(store):
    assert store.remove_warn(1, 10) is False
    store.warn(1, 10, "one")
    store.warn(1, 10, "two")
    assert store.remove_warn(1, 10) is True
    assert store.get_warns(1, 10) == (1, ["one"])


def test_remove_warn_with_zero_record(store):
    assert store.get_warns(2, 10) == (0, [])
    assert store.remove_warn(2, 10) is False


def test_reset_and_count(store):
    store.warn(1, 10, "a")
    store.warn(2, 10, "b")
    store.warn(3, 20, "c")
    assert store.count_chat_warns(10) == 2
    assert store.reset(1, 10) is True
    assert store.count_chat_warns(10) == 1
    assert store.reset_chat(10) is True
    assert store.count_chat_warns(10) == 0
    assert store.count_chat_warns(20) == 1


def test_warns_document_round_trip():
    record = Warns(user_id=1, chat_id=2, num_warns=2, reasons=["x", "y"])
    assert Warns.from_document(record.to_document()) == record


def test_failures(store, collections):
    collections["warns_users"].fail = True
    assert store.warn(1, 10, "x") == (0, [])
    assert store.remove_warn(1, 10) is False
    assert store.reset(1, 10) is False
    assert store.reset_chat(10) is False
    assert store.get_warns(1, 10) == (0, [])