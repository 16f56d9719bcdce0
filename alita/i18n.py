"""Localized strings loaded from YAML locale files."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

_log = logging.getLogger(__name__)

DEFAULT_LANG_CODE = "en"

_MISSING = object()


def _lower_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(key).lower(): _lower_keys(item) for key, item in value.items()}
    return value


def _to_string(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "+Inf" if value > 0 else "-Inf"
        if value.is_integer():
            return str(int(value))
        return format(value, "f") if "e" in repr(value) else repr(value)
    return str(value)


def _to_string_list(value: Any) -> list[str]:
    if isinstance(value, list):
        return [_to_string(item) for item in value]
    if isinstance(value, str):
        return value.split()
    return []


def _lookup(tree: dict, parts: list[str]) -> Any:
    for cut in range(len(parts), 0, -1):
        prefix = ".".join(parts[:cut])
        if prefix not in tree:
            continue
        value = tree[prefix]
        if cut == len(parts):
            return value
        if isinstance(value, dict):
            found = _lookup(value, parts[cut:])
            if found is not _MISSING:
                return found
    return _MISSING


class Locales:
    """Holds the raw and parsed content of every locale, keyed by language code."""

    def __init__(self) -> None:
        self._raw: dict[str, bytes] = {}
        self._parsed: dict[str, dict] = {}

    def __contains__(self, lang_code: object) -> bool:
        return lang_code in self._raw

    def add(self, lang_code: str, content: bytes | str) -> None:
        """Register the YAML content of one locale."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._raw[lang_code] = content
        self._parsed.pop(lang_code, None)

    def load_directory(self, directory: str | Path) -> None:
        """Load every locale file in a directory, named by its language code."""
        for entry in sorted(Path(directory).iterdir()):
            if not entry.is_file():
                continue
            lang_code = entry.name.replace(".yml", "").replace(".yaml", "")
            self.add(lang_code, entry.read_bytes())

    def lookup(self, lang_code: str, key: str) -> Any:
        """Return the value at a dotted, case-insensitive key, or None."""
        value = _lookup(self._tree(lang_code), key.lower().split("."))
        return None if value is _MISSING else value

    def _tree(self, lang_code: str) -> dict:
        tree = self._parsed.get(lang_code)
        if tree is None:
            tree = {}
            try:
                loaded = yaml.safe_load(self._raw.get(lang_code, b"")) or {}
            except yaml.YAMLError as exc:
                _log.warning("Failed to read config for locale %s: %s", lang_code, exc)
                loaded = {}
            if isinstance(loaded, dict):
                tree = _lower_keys(loaded)
            else:
                _log.warning("Failed to read config for locale %s: not a mapping", lang_code)
            self._parsed[lang_code] = tree
        return tree


DEFAULT_LOCALES = Locales()


@dataclass(frozen=True)
class I18n:
    """Looks up localized strings for one language code."""

    lang_code: str
    locales: Locales = field(default_factory=lambda: DEFAULT_LOCALES, compare=False, repr=False)

    def _fallback(self) -> I18n | None:
        if self.lang_code == DEFAULT_LANG_CODE:
            return None
        return I18n(DEFAULT_LANG_CODE, self.locales)

    def get_string(self, key: str) -> str:
        """Return the string at key; a "<nil>" value falls back to the default language."""
        text = _to_string(self.locales.lookup(self.lang_code, key))
        if text == "<nil>":
            fallback = self._fallback()
            if fallback is not None:
                return fallback.get_string(key)
        return text

    def get_string_slice(self, key: str) -> list[str]:
        """Return the list at key; an empty result falls back to the default language."""
        items = _to_string_list(self.locales.lookup(self.lang_code, key))
        if not items:
            fallback = self._fallback()
            if fallback is not None:
                return fallback.get_string_slice(key)
        return items