import pytest

from alita.i18n import I18n, Locales

EN = """
main:
  greeting: Hello there
  Count: 3
  enabled: true
  ratio: 2.5
  empty: "<nil>"
help:
  commands:
    - start
    - help
  words: alpha beta  gamma
"""

ES = """
main:
  greeting: Hola
  empty: "<nil>"
"""


@pytest.fixture
def locales():
    store = Locales()
    store.add("en", EN)
    store.add("es", ES.encode("utf-8"))
    return store


def test_get_string_nested(locales):
    assert I18n("en", locales).get_string("main.greeting") == "Hello there"
    assert I18n("es", locales).get_string("main.greeting") == "Hola"


def test_keys_are_case_insensitive(locales):
    assert I18n("en", locales).get_string("MAIN.Greeting") == "Hello there"
    assert I18n("en", locales).get_string("main.count") == "3"


def test_scalar_conversions(locales):
    i18n = I18n("en", locales)
    assert i18n.get_string("main.enabled") == "true"
    assert i18n.get_string("main.ratio") == "2.5"


def test_missing_key_gives_empty_string(locales):
    assert I18n("es", locales).get_string("main.absent") == ""


def test_map_value_gives_empty_string(locales):
    assert I18n("en", locales).get_string("main") == ""


def test_nil_marker_in_default_language_is_returned(locales):
    assert I18n("en", locales).get_string("main.empty") == "<nil>"


def test_get_string_slice_list(locales):
    assert I18n("en", locales).get_string_slice("help.commands") == ["start", "help"]


def test_get_string_slice_splits_string(locales):
    assert I18n("en", locales).get_string_slice("help.words") == ["alpha", "beta", "gamma"]


def test_get_string_slice_falls_back_to_default(locales):
    assert I18n("es", locales).get_string_slice("help.commands") == ["start", "help"]


def test_get_string_slice_unknown_language_falls_back(locales):
    assert I18n("xx", locales).get_string_slice("help.commands") == ["start", "help"]


def test_get_string_slice_missing_everywhere(locales):
    assert I18n("es", locales).get_string_slice("nope") == []


def test_invalid_yaml_is_treated_as_empty():
    store = Locales()
    store.add("en", "key: [unclosed")
    assert I18n("en", store).get_string("key") == ""
    assert I18n("en", store).get_string_slice("key") == []


def test_add_replaces_content():
    store = Locales()
    store.add("en", "a: one")
    assert I18n("en", store).get_string("a") == "one"
    store.add("en", "a: two")
    assert I18n("en", store).get_string("a") == "two"


def test_load_directory(tmp_path):
    (tmp_path / "en.yml").write_text("title: Welcome\n", encoding="utf-8")
    (tmp_path / "de.yaml").write_text("title: Willkommen\n", encoding="utf-8")
    (tmp_path / "sub").mkdir()
    store = Locales()
    store.load_directory(tmp_path)
    assert "en" in store
    assert "de" in store
    assert "sub" not in store
    assert I18n("de", store).get_string("title") == "Willkommen"
    assert I18n("en", store).get_string("title") == "Welcome"


def test_i18n_equality_ignores_locales(locales):
    assert I18n("en", locales) == I18n("en", Locales())