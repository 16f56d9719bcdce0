import pytest

from alita.antiflood import DEFAULT_FLOOD_MODE, FloodSettings, FloodStore
from alita.memstore import MemoryDatabase
from alita.store import ANTIFLOOD_SETTINGS, Database


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


@pytest.fixture
def broken():
    db = Database(_Broken())
    db.retry_sleep = lambda seconds: None
    return db


def test_default_settings(database):
    settings = FloodStore(database).get(1)
    assert settings == FloodSettings(chat_id=1, limit=0, mode="mute", delete_message=False)
    assert database.find_one(ANTIFLOOD_SETTINGS, {"_id": 1})["mode"] == "mute"


def test_set_limit_on_new_chat(database):
    store = FloodStore(database)
    result = store.set_limit(2, 5)
    assert result == FloodSettings(chat_id=2, limit=5, mode=DEFAULT_FLOOD_MODE)
    assert store.get(2) == result


def test_set_mode_keeps_limit(database):
    store = FloodStore(database)
    store.set_limit(3, 6)
    result = store.set_mode(3, "ban")
    assert result.limit == 6
    assert result.mode == "ban"
    assert store.get(3).mode == "ban"


def test_set_delete_message(database):
    store = FloodStore(database)
    result = store.set_delete_message(4, True)
    assert result.delete_message is True
    assert result.limit == 0
    assert database.find_one(ANTIFLOOD_SETTINGS, {"_id": 4})["del_msg"] is True


def test_stats_counts_enabled_chats(database):
    store = FloodStore(database)
    store.set_limit(10, 3)
    store.set_limit(11, 4)
    store.set_limit(12, 0)
    store.get(13)
    assert store.stats() == 2


def test_broken_database(broken):
    store = FloodStore(broken)
    assert store.set_limit(5, 7) is None
    assert store.get(5) == FloodSettings(chat_id=5)
    assert store.stats() == 0


def test_document_round_trip():
    settings = FloodSettings(chat_id=8, limit=9, mode="kick", delete_message=True)
    assert FloodSettings.from_document(settings.to_document()) == settings
    assert "mode" not in FloodSettings(mode="").to_document()