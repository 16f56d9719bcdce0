import copy
from collections import defaultdict
from types import SimpleNamespace

import pytest

from alita.rules import Rules, RulesStore
from alita.store import Database


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
                if "$ne" in cond and value == cond["$ne"]:
                    return False
            elif value != cond:
                return False
        return True

    def _first(self, query):
        return next((d for d in self.docs if self._matches(d, query)), None)

    def find_one(self, query):
        self._check()
        doc = self._first(query)
        return copy.deepcopy(doc) if doc is not None else None

    def count_documents(self, query):
        self._check()
        return sum(1 for d in self.docs if self._matches(d, query))

    def update_one(self, query, update, upsert=False):
        self._check()
        doc = self._first(query)
        if doc is None and upsert:
            doc = {k: v for k, v in query.items() if not isinstance(v, dict)}
            self.docs.append(doc)
        if doc is not None:
            doc.update(copy.deepcopy(update.get("$set", {})))
        return SimpleNamespace()


@pytest.fixture
def collections():
    return defaultdict(FakeCollection)


@pytest.fixture
def store(collections):
    database = Database(collections)
    database.retry_sleep = lambda _: None
    return RulesStore(database)


def test_get_defaults_and_stores(store, collections):
    rules = store.get(5)
    assert rules == Rules(chat_id=5, rules="", private=False, button="")
    assert collections["rules"].docs == [{"_id": 5, "rules": "", "privrules": False}]


def test_set_rules_persists(store, collections):
    store.set_rules(5, "be nice")
    assert store.get(5).rules == "be nice"
    assert collections["rules"].docs[0]["rules"] == "be nice"


def test_set_button_and_private(store, collections):
    store.set_button(7, "Read")
    store.set_private(7, True)
    result = store.get(7)
    assert result.button == "Read"
    assert result.private is True
    assert collections["rules"].docs[0]["rules_button"] == "Read"


def test_existing_document_loaded(store, collections):
    collections["rules"].docs.append({"_id": 9, "rules": "x", "privrules": True})
    assert store.get(9) == Rules(chat_id=9, rules="x", private=True)


def test_document_round_trip():
    rules = Rules(chat_id=3, rules="r", private=True, button="b")
    assert Rules.from_document(rules.to_document()) == rules


def test_stats(store):
    store.set_rules(1, "a")
    store.set_rules(2, "b")
    store.get(3)
    store.set_private(2, True)
    assert store.stats() == (2, 1)


def test_get_falls_back_on_failure(store, collections):
    collections["rules"].fail = True
    assert store.get(11) == Rules(chat_id=11)
    assert store.stats() == (0, 0)