import pytest

from alita.memstore import MemoryDatabase
from alita.pins import PinSettings, PinStore
from alita.store import PINS, Database


class _Broken:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise RuntimeError("down")

        return fail


class _BrokenDb:
    def __getitem__(self, name):
        return _Broken()


@pytest.fixture
def db():
    return Database(MemoryDatabase())


@pytest.fixture
def store(db):
    return PinStore(db)


def test_get_creates_default(db, store):
    assert store.get(42) == PinSettings(chat_id=42)
    assert db.count_docs(PINS, {"_id": 42}) == 1
    assert db.find_one(PINS, {"_id": 42}) == {
        "_id": 42,
        "antichannelpin": False,
        "cleanlinked": False,
    }


def test_set_clean_linked(store):
    store.set_anti_channel_pin(42, True)
    store.set_clean_linked(42, True)
    assert store.get(42) == PinSettings(chat_id=42, anti_channel_pin=False, clean_linked=True)


def test_set_anti_channel_pin_clears_clean_linked(store):
    store.set_clean_linked(42, True)
    store.set_anti_channel_pin(42, True)
    assert store.get(42) == PinSettings(chat_id=42, anti_channel_pin=True, clean_linked=False)


def test_disable_both(store):
    store.set_anti_channel_pin(42, True)
    store.set_clean_linked(42, False)
    assert store.get(42) == PinSettings(chat_id=42)


def test_stats(store):
    anti_chats = [1]
    clean_chats = [2, 3]
    for chat_id in anti_chats:
        store.set_anti_channel_pin(chat_id, True)
    for chat_id in clean_chats:
        store.set_clean_linked(chat_id, True)
    store.get(9)
    assert store.stats() == (len(anti_chats), len(clean_chats))


def test_round_trip_document():
    settings = PinSettings(chat_id=-100, anti_channel_pin=True)
    assert PinSettings.from_document(settings.to_document()) == settings


def test_failures_return_defaults():
    database = Database(_BrokenDb())
    database.retry_sleep = lambda seconds: None
    store = PinStore(database)
    assert store.get(5) == PinSettings(chat_id=5)
    assert store.stats() == (0, 0)