"""Per-chat rules text and how it is shown."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .store import RULES, Database, DatabaseError

_log = logging.getLogger(__name__)

_CACHE_KIND = "rules"


@dataclass
class Rules:
    """The rules of a chat, whether they are sent privately, and the button text."""

    chat_id: int = 0
    rules: str = ""
    private: bool = False
    button: str = ""

    def to_document(self) -> dict[str, Any]:
        """Return the stored form; an empty button text is left out."""
        doc: dict[str, Any] = {}
        if self.chat_id:
            doc["_id"] = self.chat_id
        doc["rules"] = self.rules
        doc["privrules"] = self.private
        if self.button:
            doc["rules_button"] = self.button
        return doc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> Rules:
        """Build rules from their stored form."""
        return cls(
            chat_id=int(doc.get("_id", 0) or 0),
            rules=doc.get("rules", "") or "",
            private=bool(doc.get("privrules", False)),
            button=doc.get("rules_button", "") or "",
        )


class RulesStore:
    """Stores chat rules, with caching."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def get(self, chat_id: int) -> Rules:
        """Return the chat's rules, storing empty ones when there are none."""
        cached = self._db.cache_get(_CACHE_KIND, chat_id)
        if cached is not None:
            return cached
        default = Rules(chat_id=chat_id)
        try:
            doc = self._db.find_one(RULES, {"_id": chat_id})
        except DatabaseError as exc:
            _log.error("[Database] checkRulesSetting: %s - %d", exc, chat_id)
            rules = default
        else:
            if doc is None:
                rules = default
                try:
                    self._db.update_one(RULES, {"_id": chat_id}, default.to_document())
                except DatabaseError as exc:
                    _log.error("[Database] checkRulesSetting: %s - %d", exc, chat_id)
            else:
                rules = Rules.from_document(doc)
        self._db.cache_set(_CACHE_KIND, chat_id, rules)
        return rules

    def _save(self, op: str, chat_id: int, rules: Rules) -> None:
        try:
            self._db.update_one(RULES, {"_id": chat_id}, rules.to_document())
        except DatabaseError as exc:
            _log.error("[Database] %s: %s - %d", op, exc, chat_id)
        self._db.cache_set(_CACHE_KIND, chat_id, rules)

    def set_rules(self, chat_id: int, rules: str) -> None:
        """Replace the chat's rules text."""
        current = self.get(chat_id)
        current.rules = rules
        self._save("SetChatRules", chat_id, current)

    def set_button(self, chat_id: int, button: str) -> None:
        """Set the text of the button that opens the rules."""
        current = self.get(chat_id)
        current.button = button
        self._save("SetChatRulesButton", chat_id, current)

    def set_private(self, chat_id: int, pref: bool) -> None:
        """Set whether the rules are sent in a private message."""
        current = self.get(chat_id)
        current.private = pref
        self._save("SetPrivateRules", chat_id, current)

    def stats(self) -> tuple[int, int]:
        """Return how many chats have rules set and how many send them privately."""
        counts = []
        for query in ({"rules": {"$ne": ""}}, {"privrules": True}):
            try:
                counts.append(self._db.count_docs(RULES, query))
            except DatabaseError as exc:
                _log.error("[Database] LoadRulesStats: %s", exc)
                counts.append(0)
        return counts[0], counts[1]