# alita

The configuration, storage and localisation layer of a Telegram
group-management bot. It keeps per-chat moderation settings in MongoDB
(filters, pins, anonymous-admin mode, antiflood, blacklists, connections,
disabled commands, locks, rules, users and warnings), reads its settings from
environment variables, and looks up localised strings in YAML files.

## What it does not do

This package does not talk to Telegram. It has no bot loop, no update
handlers and no command to start anything; it is a library for such a bot to
use. The Redis settings are read into `Settings` but nothing connects to
Redis: the cache in front of the stores is an in-process cache. There are no
stores for chats, channels, greetings, notes, captchas, reports or the bot's
team, although `alita.store` names their collections.

## Configuration

`alita.config.load_settings(environ)` builds a frozen `Settings` object from
a mapping of environment variables. Called with no argument, it first loads a
`.env` file from the working directory when there is one, then reads
`os.environ`. Recognised variables:

| Variable | Meaning | Default |
| --- | --- | --- |
| `BOT_TOKEN` | Telegram bot token | empty |
| `DB_URI` | MongoDB connection URI | empty |
| `DB_NAME` | Database name | `Alita_Robot` |
| `OWNER_ID` | Telegram id of the bot owner | `0` |
| `MESSAGE_DUMP` | Chat id that receives log messages | `0` |
| `DEBUG` | Debug logging: `1`, `t` or `true` in any case | off |
| `DROP_PENDING_UPDATES` | Same values as `DEBUG` | off |
| `ALLOWED_UPDATES` | Comma-separated update types | every update type |
| `ENABLED_LOCALES` | Comma-separated language codes | `en` |
| `API_SERVER` | Bot API endpoint | `https://api.telegram.org` |
| `REDIS_ADDRESS` | Redis address | `localhost:6379` |
| `REDIS_PASSWORD` | Redis password | empty |
| `REDIS_DB` | Redis database number | `0` |
| `MONGO_MAX_POOL_SIZE` | Connection pool upper bound | `100` |
| `MONGO_MIN_POOL_SIZE` | Connection pool lower bound | `10` |
| `MONGO_MAX_CONN_IDLE_TIME` | Idle time before a pooled connection closes, e.g. `30s` | `30s` |
| `MONGO_MAX_IDLE_TIME` | Idle time, e.g. `1m30s` | `30s` |

Numbers and durations that cannot be parsed fall back to their defaults.
Durations take the units `ns`, `us`, `ms`, `s`, `m` and `h`, and may combine
them (`1h15m`, `1.5h`); `parse_duration` raises `ValueError` for anything
else. The helpers `parse_bool`, `parse_int`, `parse_string_list`,
`parse_uint_env` and `parse_duration_env` are public too.

`configure_logging(debug)` sets up the `alita` logger to write one JSON
object per record to standard error: at info level normally, and at debug
level, pretty-printed and with the calling function and file, in debug mode.

## Storage

`alita.store.connect(settings)` opens the MongoDB database named in the
settings, creates its indexes and returns a `Database`. It raises
`DatabaseError` when no `DB_URI` is set.

A `Database` wraps any object that gives collections by name. Each operation
(`update_one`, `find_one`, `count_docs`, `find_all`, `delete_one`,
`delete_many`, `find_one_and_upsert`) is tried up to three times with a short
random pause in between, is logged as slow when it takes over 100 ms, and
raises `DatabaseError` when every attempt fails. `create_indexes()` creates
the indexes and returns the names of the collections where that failed. The
`retry(fn, attempts, sleep)` helper is available on its own.

Each feature has its own store that wraps a `Database`:

| Module | Store | Holds |
| --- | --- | --- |
| `alita.filters` | `FilterStore` | keyword filters and their replies |
| `alita.pins` | `PinStore` | anti-channel-pin and clean-linked flags |
| `alita.admin` | `AdminStore` | anonymous admin mode |
| `alita.antiflood` | `FloodStore` | flood limit, action and message deletion |
| `alita.blacklists` | `BlacklistStore` | blacklisted triggers and the action on them |
| `alita.connections` | `ConnectionStore` | user-to-chat connections and whether chats allow them |
| `alita.disable` | `DisableStore` | disabled commands |
| `alita.locks` | `LockStore` | locked message types and restrictions |
| `alita.rules` | `RulesStore` | rules text, button text and private delivery |
| `alita.users` | `UserStore` | usernames, names and languages |
| `alita.warns` | `WarnStore` | user warnings and the per-chat warn policy |

```python
from alita.config import load_settings
from alita.store import connect
from alita.warns import WarnStore
from alita.locks import LockStore

database = connect(load_settings())

warns = WarnStore(database)
count, reasons = warns.warn(user_id=42, chat_id=-100123, reason="spam")

locks = LockStore(database)
locks.update(-100123, "sticker", True)
assert locks.is_locked(-100123, "sticker")
```

Settings that do not exist yet are stored with their defaults on first read:
a new chat gets a warn limit of 3 in `mute` mode, antiflood off (limit 0) in
`mute` mode, and a blacklist with the action `none`. Store methods log
database failures and return a default or a false value instead of raising.
Admin, antiflood, blacklist, disable, rules, user and warn-policy settings are
cached in memory for ten minutes.

Warning reasons default to `No Reason` and are cut to 3000 bytes. Blacklist
triggers and actions are stored in lower case. `alita.locks.map_lock_types`
gives every lock name with whether it is set.

### In-memory database

`alita.memstore.MemoryDatabase` stands in for a MongoDB database in tests and
local experiments; hand it to `Database` in place of a real one. Its
`MemoryCollection` supports equality and the `$eq`, `$ne`, `$gt`, `$gte`,
`$lt`, `$lte`, `$in`, `$nin`, `$exists`, `$and` and `$or` query operators,
the `$set`, `$setOnInsert`, `$inc`, `$push`, `$pop`, `$addToSet` and `$unset`
update operators, sorting, skip and limit, and unique indexes.

```python
from alita.memstore import MemoryDatabase
from alita.store import Database
from alita.rules import RulesStore

rules = RulesStore(Database(MemoryDatabase()))
rules.set_rules(-100123, "Be kind.")
```

## Pagination

`alita.pagination.Paginator` pages through a collection in `_id` order,
either after a cursor (`next_page`) or from an offset (`page_by_offset`),
each returning a `PaginatedResult`. `apply_safety_limits` brings the
`PaginationOptions` into range: a page size outside 1–500 becomes 100, an
offset above 10,000 becomes 0, and a sort direction other than 1 or -1
becomes 1. Offset pages give the next and previous offsets, or -1 where there
is no such page.

## Localisation

`alita.i18n.Locales` holds YAML locale content keyed by language code. Add
one with `add(lang_code, content)`, or load every `<code>.yml` or
`<code>.yaml` file in a directory with `load_directory(directory)`.

`I18n(lang_code, locales)` looks up dotted, case-insensitive keys.
`get_string` returns the text at a key, or an empty string when there is
none; only a stored value of `<nil>` makes it try English instead.
`get_string_slice` returns the list at a key and falls back to English when
that list is empty.