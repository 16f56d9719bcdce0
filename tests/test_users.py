import copy
from collections import defaultdict
from types import SimpleNamespace

import pytest

from alita.store import Database
from alita.users import DEFAULT_LANGUAGE, User, UserStore


class FakeCollection:
    def __init__(self):
        self.docs = []
        self.fail = False

    def _check(self):
        if self.fail:
            raise RuntimeError("unavailable")

    @staticmethod
    def _matches(doc, query):
        return all(doc.get(k) == v for k, v in query.items())

    def _first(self, query):
        return next((d for d in self.docs if self._matches(d, query)), None)

    def find_one(self, query):
        self._check()
        doc = self._first(query)
        return copy.deepcopy(doc) if doc is not None else None

    def count_documents(self, query):
        self._check()
        return sum(1 for d in self.docs if self._matches(d, query))

    def _upsert(self, query, update):
        doc = self._first(query)
        if doc is None:
            doc = dict(query)
            self.docs.append(doc)
            doc.update(copy.deepcopy(update.get("$setOnInsert", {})))
        doc.update(copy.deepcopy(update.get("$set", {})))
        return doc

    def update_one(self, query, update, upsert=False):
        self._check()
        self._upsert(query, update)
        return SimpleNamespace()

    def find_one_and_update(self, query, update, upsert=False, return_document=None):
        self._check()
        return copy.deepcopy(self._upsert(query, update))


@pytest.fixture
def collections():
    return defaultdict(FakeCollection)


@pytest.fixture
def store(collections):
    database = Database(collections)
    database.retry_sleep = lambda _: None
    return UserStore(database)


def test_unknown_user_is_none(store):
    assert store.get(42) is None
    assert store.info_by_id(42) == ("", "", False)


def test_update_creates_with_default_language(store):
    user = store.update(42, "alice", "Alice")
    assert user == User(user_id=42, username="alice", name="Alice", language=DEFAULT_LANGUAGE)
    assert store.get(42) == user


def test_update_keeps_language(store, collections):
    collections["users"].docs.append({"_id": 7, "username": "a", "name": "A", "language": "de"})
    user = store.update(7, "b", "B")
    assert user.language == "de"
    assert user.username == "b"


def test_info_and_id_by_username(store):
    store.update(5, "bob", "Bob")
    assert store.info_by_id(5) == ("bob", "Bob", True)
    assert store.id_by_username("bob") == 5
    assert store.id_by_username("nobody") == 0


def test_ensure_bot(store, collections):
    store.ensure_bot(99, "alitabot", "Alita")
    assert store.get(99) == User(user_id=99, username="alitabot", name="Alita")


def test_stats(store):
    store.update(1, "a", "A")
    store.update(2, "b", "B")
    assert store.stats() == 2


def test_document_round_trip():
    user = User(user_id=3, username="c", name="C", language="fr")
    assert User.from_document(user.to_document()) == user


def test_failure_gives_bare_user(store, collections):
    collections["users"].fail = True
    assert store.get(8) == User(user_id=8)
    assert store.update(8, "x", "X") is None
    assert store.stats() == 0