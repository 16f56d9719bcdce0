"""An in-memory document store offering the collection operations the bot uses."""

from __future__ import annotations

import copy
import operator
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping

from bson import ObjectId

_MISSING = object()


class WriteError(Exception):
    """A write was rejected."""


class DuplicateKeyError(WriteError):
    """A write would break a unique index."""


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of an update."""

    matched_count: int
    modified_count: int
    upserted_id: Any = None


@dataclass(frozen=True)
class DeleteResult:
    """Outcome of a delete."""

    deleted_count: int


def _get_path(doc: Any, path: str) -> Any:
    current = doc
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return _MISSING
    return current


def _set_path(doc: dict, path: str, value: Any) -> None:
    parts = path.split(".")
    current = doc
    for part in parts[:-1]:
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt
    current[parts[-1]] = value


def _unset_path(doc: dict, path: str) -> None:
    parts = path.split(".")
    current = doc
    for part in parts[:-1]:
        current = current.get(part)
        if not isinstance(current, dict):
            return
    current.pop(parts[-1], None)


def _rank(value: Any) -> int:
    if value is None or value is _MISSING:
        return 1
    if isinstance(value, bool):
        return 8
    if isinstance(value, (int, float)):
        return 2
    if isinstance(value, str):
        return 3
    if isinstance(value, dict):
        return 4
    if isinstance(value, list):
        return 5
    if isinstance(value, bytes):
        return 6
    if isinstance(value, ObjectId):
        return 7
    if isinstance(value, datetime):
        return 9
    return 10


def _sort_key(value: Any) -> tuple[int, Any]:
    rank = _rank(value)
    if rank == 1:
        return (rank, 0)
    if rank in (4, 5, 10):
        return (rank, repr(value))
    return (rank, value)


def _eq(a: Any, b: Any) -> bool:
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b


def _equals(value: Any, expected: Any) -> bool:
    if value is _MISSING:
        return expected is None
    if isinstance(value, list) and not isinstance(expected, list):
        return any(_eq(item, expected) for item in value)
    return _eq(value, expected)


def _ordered(value: Any, bound: Any, op: Callable[[Any, Any], bool]) -> bool:
    candidates = [value, *value] if isinstance(value, list) else [value]
    for candidate in candidates:
        if candidate is _MISSING or _rank(candidate) != _rank(bound):
            continue
        try:
            if op(candidate, bound):
                return True
        except TypeError:
            continue
    return False


_COMPARISONS = {"$gt": operator.gt, "$gte": operator.ge, "$lt": operator.lt, "$lte": operator.le}


def _apply_operator(value: Any, op: str, arg: Any) -> bool:
    if op == "$eq":
        return _equals(value, arg)
    if op == "$ne":
        return not _equals(value, arg)
    if op in _COMPARISONS:
        return _ordered(value, arg, _COMPARISONS[op])
    if op == "$in":
        return any(_equals(value, item) for item in arg)
    if op == "$nin":
        return not any(_equals(value, item) for item in arg)
    if op == "$exists":
        return (value is not _MISSING) == bool(arg)
    raise ValueError(f"unsupported query operator {op}")


def _is_operator_dict(cond: Any) -> bool:
    return isinstance(cond, dict) and bool(cond) and all(str(k).startswith("$") for k in cond)


def _matches(doc: dict, query: Mapping[str, Any]) -> bool:
    for key, cond in query.items():
        if key == "$and":
            if not all(_matches(doc, part) for part in cond):
                return False
        elif key == "$or":
            if not any(_matches(doc, part) for part in cond):
                return False
        elif _is_operator_dict(cond):
            value = _get_path(doc, key)
            if not all(_apply_operator(value, op, arg) for op, arg in cond.items()):
                return False
        elif not _equals(_get_path(doc, key), cond):
            return False
    return True


def _seed_from_filter(query: Mapping[str, Any]) -> dict:
    seed: dict = {}
    for key, cond in query.items():
        if key.startswith("$"):
            continue
        if _is_operator_dict(cond):
            if "$eq" in cond:
                _set_path(seed, key, copy.deepcopy(cond["$eq"]))
            continue
        _set_path(seed, key, copy.deepcopy(cond))
    return seed


_UPDATE_OPERATORS = frozenset(
    {"$set", "$setOnInsert", "$inc", "$push", "$pop", "$addToSet", "$unset"}
)


def _validate_update(update: Mapping[str, Any]) -> None:
    if not update or not all(str(k).startswith("$") for k in update):
        raise ValueError("update only works with $ operators")
    unknown = set(update) - _UPDATE_OPERATORS
    if unknown:
        raise ValueError(f"unsupported update operator {sorted(unknown)[0]}")


def _current_list(doc: dict, path: str) -> list:
    current = _get_path(doc, path)
    if current is _MISSING:
        return []
    if not isinstance(current, list):
        raise WriteError(f"field {path!r} is not an array")
    return current


def _apply_update(doc: dict, update: Mapping[str, Any], inserting: bool) -> None:
    for op, fields in update.items():
        if op == "$setOnInsert" and not inserting:
            continue
        for path, arg in fields.items():
            arg = copy.deepcopy(arg)
            if op in ("$set", "$setOnInsert"):
                _set_path(doc, path, arg)
            elif op == "$unset":
                _unset_path(doc, path)
            elif op == "$inc":
                current = _get_path(doc, path)
                if current is _MISSING:
                    current = 0
                if isinstance(current, bool) or not isinstance(current, (int, float)):
                    raise WriteError(f"cannot increment non-numeric field {path!r}")
                _set_path(doc, path, current + arg)
            elif op == "$push":
                _set_path(doc, path, [*_current_list(doc, path), arg])
            elif op == "$addToSet":
                items = _current_list(doc, path)
                if not any(_eq(item, arg) for item in items):
                    items = [*items, arg]
                _set_path(doc, path, items)
            elif op == "$pop":
                if _get_path(doc, path) is _MISSING:
                    continue
                items = _current_list(doc, path)
                _set_path(doc, path, items[:-1] if arg >= 1 else items[1:])


def _normalize_keys(keys: str | Iterable[tuple[str, int]]) -> tuple[tuple[str, int], ...]:
    if isinstance(keys, str):
        return ((keys, 1),)
    return tuple((str(field), direction) for field, direction in keys)


def _index_key(doc: dict, keys: tuple[tuple[str, int], ...]) -> tuple:
    values = []
    for field, _ in keys:
        value = _get_path(doc, field)
        values.append(None if value is _MISSING else value)
    return tuple(values)


class MemoryCollection:
    """A collection of documents held in memory."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._docs: list[dict] = []
        self._indexes: dict[str, tuple[tuple[str, int], ...]] = {"_id_": (("_id", 1),)}
        self._unique: set[str] = {"_id_"}
        self._lock = threading.RLock()

    def _check_unique(self, candidate: dict, skip: int | None = None) -> None:
        for name in self._unique:
            keys = self._indexes[name]
            wanted = _index_key(candidate, keys)
            for position, doc in enumerate(self._docs):
                if position != skip and _index_key(doc, keys) == wanted:
                    raise DuplicateKeyError(f"duplicate key on index {name}: {wanted}")

    def find_one(self, filter: Mapping[str, Any] | None = None) -> dict | None:
        """Return a copy of the first matching document, or None."""
        query = filter or {}
        with self._lock:
            for doc in self._docs:
                if _matches(doc, query):
                    return copy.deepcopy(doc)
        return None

    def find(
        self,
        filter: Mapping[str, Any] | None = None,
        sort: Iterable[tuple[str, int]] | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[dict]:
        """Return copies of matching documents, sorted, skipped and limited."""
        query = filter or {}
        with self._lock:
            found = [copy.deepcopy(doc) for doc in self._docs if _matches(doc, query)]
        for key, direction in reversed(list(sort or ())):
            found.sort(key=lambda doc, k=key: _sort_key(_get_path(doc, k)), reverse=direction < 0)
        found = found[skip:]
        if limit > 0:
            found = found[:limit]
        return found

    def count_documents(self, filter: Mapping[str, Any] | None = None) -> int:
        """Count matching documents."""
        query = filter or {}
        with self._lock:
            return sum(1 for doc in self._docs if _matches(doc, query))

    def _write(
        self, filter: Mapping[str, Any] | None, update: Mapping[str, Any], upsert: bool
    ) -> tuple[dict | None, dict | None, Any]:
        query = filter or {}
        _validate_update(update)
        with self._lock:
            for position, doc in enumerate(self._docs):
                if not _matches(doc, query):
                    continue
                updated = copy.deepcopy(doc)
                _apply_update(updated, update, inserting=False)
                if not _eq(updated.get("_id"), doc.get("_id")):
                    raise WriteError("the _id field cannot be changed")
                self._check_unique(updated, skip=position)
                self._docs[position] = updated
                return doc, updated, None
            if not upsert:
                return None, None, None
            seed = _seed_from_filter(query)
            _apply_update(seed, update, inserting=True)
            if "_id" not in seed:
                seed = {"_id": ObjectId(), **seed}
            self._check_unique(seed)
            self._docs.append(seed)
            return None, seed, seed["_id"]

    def update_one(
        self, filter: Mapping[str, Any], update: Mapping[str, Any], upsert: bool = False
    ) -> UpdateResult:
        """Update the first matching document, inserting one when upsert is set."""
        before, after, upserted_id = self._write(filter, update, upsert)
        if before is None:
            return UpdateResult(0, 0, upserted_id)
        return UpdateResult(1, 0 if before == after else 1, None)

    def find_one_and_update(
        self,
        filter: Mapping[str, Any],
        update: Mapping[str, Any],
        upsert: bool = False,
        return_document: bool = False,
    ) -> dict | None:
        """Update the first match and return it as it was, or as it is when return_document."""
        before, after, _ = self._write(filter, update, upsert)
        chosen = after if return_document else before
        return None if chosen is None else copy.deepcopy(chosen)

    def delete_one(self, filter: Mapping[str, Any] | None = None) -> DeleteResult:
        """Delete the first matching document."""
        query = filter or {}
        with self._lock:
            for position, doc in enumerate(self._docs):
                if _matches(doc, query):
                    del self._docs[position]
                    return DeleteResult(1)
        return DeleteResult(0)

    def delete_many(self, filter: Mapping[str, Any] | None = None) -> DeleteResult:
        """Delete every matching document."""
        query = filter or {}
        with self._lock:
            kept = [doc for doc in self._docs if not _matches(doc, query)]
            deleted = len(self._docs) - len(kept)
            self._docs = kept
        return DeleteResult(deleted)

    def create_index(self, keys: str | Iterable[tuple[str, int]], unique: bool = False) -> str:
        """Create an index and return its name; unique ones reject existing duplicates."""
        normalized = _normalize_keys(keys)
        name = "_".join(f"{field}_{direction}" for field, direction in normalized)
        with self._lock:
            if name in self._indexes:
                return name
            if unique:
                seen: list[tuple] = []
                for doc in self._docs:
                    key = _index_key(doc, normalized)
                    if key in seen:
                        raise DuplicateKeyError(f"duplicate key on index {name}: {key}")
                    seen.append(key)
                self._unique.add(name)
            self._indexes[name] = normalized
        return name

    def index_information(self) -> dict[str, dict[str, Any]]:
        """Describe the indexes by name."""
        with self._lock:
            info: dict[str, dict[str, Any]] = {}
            for name, keys in self._indexes.items():
                entry: dict[str, Any] = {"key": list(keys)}
                if name in self._unique and name != "_id_":
                    entry["unique"] = True
                info[name] = entry
            return info


class MemoryDatabase:
    """A set of in-memory collections, created on first use."""

    def __init__(self, name: str = "memory") -> None:
        self.name = name
        self._collections: dict[str, MemoryCollection] = {}
        self._lock = threading.Lock()

    def __getitem__(self, name: str) -> MemoryCollection:
        with self._lock:
            coll = self._collections.get(name)
            if coll is None:
                coll = self._collections[name] = MemoryCollection(name)
            return coll

    def list_collection_names(self) -> list[str]:
        """Names of the collections created so far."""
        with self._lock:
            return sorted(self._collections)