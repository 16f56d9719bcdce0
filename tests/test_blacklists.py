import pytest

from alita.blacklists import DEFAULT_REASON, BlacklistSettings, BlacklistStore
from alita.memstore import MemoryDatabase
from alita.store import BLACKLISTS, Database


class _Broken:
    def __getitem__(self, name):
        return self

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise RuntimeError("down")

        return fail


@pytest.fixture
def database():
    db = Database(MemoryDatabase())
    db.retry_sleep = lambda seconds: None
    return db


def test_default_settings(database):
    settings = BlacklistStore(database).get(1)
    assert settings.action == "none"
    assert settings.triggers == []
    assert settings.reason == "Automated Blacklisted word %s"
    assert database.find_one(BLACKLISTS, {"_id": 1})["action"] == "none"


def test_add_lowercases(database):
    store = BlacklistStore(database)
    store.add(2, "BadWord")
    assert store.get(2).triggers == ["badword"]
    assert database.find_one(BLACKLISTS, {"_id": 2})["triggers"] == ["badword"]


def test_remove_first_occurrence_case_insensitive(database):
    store = BlacklistStore(database)
    for word in ("spam", "eggs", "spam"):
        store.add(3, word)
    store.remove(3, "SPAM")
    assert store.get(3).triggers == ["eggs", "spam"]


def test_remove_missing_is_noop(database):
    store = BlacklistStore(database)
    store.add(4, "alpha")
    store.remove(4, "beta")
    assert store.get(4).triggers == ["alpha"]


def test_remove_all_persists(database):
    store = BlacklistStore(database)
    store.add(5, "one")
    store.add(5, "two")
    store.set_action(5, "ban")
    store.remove_all(5)
    assert store.get(5).triggers == []
    doc = database.find_one(BLACKLISTS, {"_id": 5})
    assert doc["triggers"] == []
    assert doc["action"] == "ban"


def test_set_action_lowercases(database):
    store = BlacklistStore(database)
    store.set_action(6, "MUTE")
    assert store.get(6).action == "mute"


def test_stats(database):
    store = BlacklistStore(database)
    store.add(7, "a")
    store.add(7, "b")
    store.add(8, "c")
    store.get(9)
    assert store.stats() == (3, 2)


def test_broken_database():
    db = Database(_Broken())
    db.retry_sleep = lambda seconds: None
    store = BlacklistStore(db)
    assert store.stats() == (0, 0)
    assert store.get(10) == BlacklistSettings(chat_id=10)


def test_document_round_trip():
    settings = BlacklistSettings(chat_id=12, action="kick", triggers=["x", "y"], reason=DEFAULT_REASON)
    assert BlacklistSettings.from_document(settings.to_document()) == settings