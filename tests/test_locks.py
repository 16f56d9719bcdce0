import pytest

from alita.locks import LockStore, Locks, Permissions, Restrictions, map_lock_types
from alita.memstore import MemoryDatabase
from alita.store import LOCKS, Database

LOCK_NAMES = {
    "sticker", "audio", "voice", "document", "video", "videonote", "contact",
    "photo", "gif", "url", "bots", "forward", "game", "location", "rtl",
    "anonchannel", "messages", "comments", "media", "other", "previews", "all",
}


class _BrokenCollection:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise RuntimeError("down")

        return fail


class _BrokenDb:
    def __getitem__(self, name):
        return _BrokenCollection()


def _database(backend):
    db = Database(backend)
    db.retry_sleep = lambda seconds: None
    return db


@pytest.fixture
def memory():
    return MemoryDatabase()


@pytest.fixture
def store(memory):
    return LockStore(_database(memory))


def test_map_of_default_locks_is_all_false():
    mapping = map_lock_types(Locks())
    assert set(mapping) == LOCK_NAMES
    assert not any(mapping.values())


def test_default_locks_stored(store, memory):
    locks = store.get(-1)
    assert locks == Locks(chat_id=-1)
    assert memory[LOCKS].find_one({"_id": -1})["permissions"] == {}


@pytest.mark.parametrize("name", sorted(LOCK_NAMES))
def test_update_sets_only_that_lock(store, name):
    store.update(-1, name, True)
    mapping = map_lock_types(store.get(-1))
    assert [key for key, value in mapping.items() if value] == [name]
    assert store.is_locked(-1, name) is True


def test_unlock_after_lock(store):
    store.update(-1, "photo", True)
    store.update(-1, "photo", False)
    assert store.is_locked(-1, "photo") is False


def test_unknown_lock_name(store):
    store.update(-1, "nonsense", True)
    assert store.is_locked(-1, "nonsense") is False
    assert not any(map_lock_types(store.get(-1)).values())


def test_stored_keys_follow_source_names(store, memory):
    store.update(-1, "rtl", True)
    store.update(-1, "comments", True)
    doc = memory[LOCKS].find_one({"_id": -1})
    assert doc["permissions"] == {"arab_chars": True}
    assert doc["restrictions"] == {"channel_comments": True}


def test_document_round_trip():
    locks = Locks(
        chat_id=-4,
        permissions=Permissions(sticker=True, send_as_channel=True),
        restrictions=Restrictions(all=True),
    )
    assert Locks.from_document(locks.to_document()) == locks


def test_missing_sections_read_as_unlocked():
    locks = Locks.from_document({"_id": -4})
    assert locks == Locks(chat_id=-4)


def test_broken_database_falls_back():
    store = LockStore(_database(_BrokenDb()))
    assert store.get(-1) == Locks(chat_id=-1)
    assert store.is_locked(-1, "sticker") is False