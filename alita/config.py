"""Runtime configuration read from environment variables."""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from fractions import Fraction
from typing import Mapping

from dotenv import load_dotenv

_log = logging.getLogger(__name__)

BOT_VERSION = "2.1.3"
DEFAULT_API_SERVER = "https://api.telegram.org"
DEFAULT_DB_NAME = "Alita_Robot"
DEFAULT_REDIS_ADDRESS = "localhost:6379"

DEFAULT_ALLOWED_UPDATES: tuple[str, ...] = (
    "message",
    "edited_message",
    "channel_post",
    "edited_channel_post",
    "inline_query",
    "chosen_inline_result",
    "callback_query",
    "shipping_query",
    "pre_checkout_query",
    "poll",
    "poll_answer",
    "my_chat_member",
    "chat_member",
    "chat_join_request",
)

DEFAULT_VALID_LANG_CODES: tuple[str, ...] = ("en",)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_UINT64_MAX = 2**64 - 1

_INT_RE = re.compile(r"[+-]?[0-9]+")
_UINT_RE = re.compile(r"[0-9]+")
_DURATION_PART = re.compile(r"([0-9]+(?:\.[0-9]*)?|\.[0-9]+)(ns|us|µs|μs|ms|s|m|h)")
_UNIT_NS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_TRUE_WORDS = frozenset({"1", "t", "true"})
_FALSE_WORDS = frozenset({"0", "f", "false"})


@dataclass(frozen=True)
class Settings:
    """All configuration values the bot needs."""

    bot_token: str = ""
    database_uri: str = ""
    main_db_name: str = DEFAULT_DB_NAME
    bot_version: str = BOT_VERSION
    api_server: str = DEFAULT_API_SERVER
    working_mode: str = "worker"
    debug: bool = False
    drop_pending_updates: bool = False
    owner_id: int = 0
    message_dump: int = 0
    redis_address: str = DEFAULT_REDIS_ADDRESS
    redis_password: str = ""
    redis_db: int = 0
    allowed_updates: tuple[str, ...] = DEFAULT_ALLOWED_UPDATES
    valid_lang_codes: tuple[str, ...] = DEFAULT_VALID_LANG_CODES
    mongo_max_pool_size: int = 100
    mongo_min_pool_size: int = 10
    mongo_max_conn_idle_time: timedelta = timedelta(seconds=30)
    mongo_max_idle_time: timedelta = timedelta(seconds=30)


def parse_bool(value: str) -> bool:
    """Interpret 1/t/true and 0/f/false (any case); anything else is False."""
    word = value.strip().lower()
    if word in _TRUE_WORDS:
        return True
    return False


def parse_int(value: str) -> int:
    """Parse a signed decimal integer, clamped to 64 bits; 0 when malformed."""
    if not _INT_RE.fullmatch(value):
        return 0
    return max(_INT64_MIN, min(_INT64_MAX, int(value)))


def parse_string_list(value: str) -> list[str]:
    """Split a comma-separated string, trimming whitespace around each item."""
    return [item.strip() for item in value.split(",")]


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as "30s", "1h15m" or "1.5h".

    Raises ValueError for malformed input.
    """
    text = value
    if not text:
        raise ValueError(f"invalid duration {value!r}")
    negative = False
    if text[0] in "+-":
        negative = text[0] == "-"
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"invalid duration {value!r}")

    total = Fraction(0)
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration {value!r}")
        number, unit = match.groups()
        total += Fraction(Decimal(number)) * _UNIT_NS[unit]
        pos = match.end()

    nanoseconds = int(total)
    if nanoseconds > _INT64_MAX + (1 if negative else 0):
        raise ValueError(f"invalid duration {value!r}")
    micro = nanoseconds // 1000
    return timedelta(microseconds=-micro if negative else micro)


def parse_uint_env(environ: Mapping[str, str], key: str, default: int) -> int:
    """Read an unsigned 64-bit integer from the environment, or the default."""
    value = environ.get(key, "")
    if not value or not _UINT_RE.fullmatch(value):
        return default
    number = int(value)
    if number > _UINT64_MAX:
        return default
    return number


def parse_duration_env(environ: Mapping[str, str], key: str, default: timedelta) -> timedelta:
    """Read a duration from the environment, or the default."""
    value = environ.get(key, "")
    if not value:
        return default
    try:
        return parse_duration(value)
    except ValueError:
        return default


def _list_or_default(raw: str, default: tuple[str, ...]) -> tuple[str, ...]:
    items = parse_string_list(raw)
    if not items or items == [""]:
        return default
    return tuple(items)


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build settings from a mapping, or from a .env file and the process environment."""
    if environ is None:
        if not load_dotenv():
            _log.warning("Warning: .env file not loaded")
        environ = os.environ

    get = environ.get
    return Settings(
        bot_token=get("BOT_TOKEN", ""),
        database_uri=get("DB_URI", ""),
        main_db_name=get("DB_NAME", "") or DEFAULT_DB_NAME,
        api_server=get("API_SERVER", "") or DEFAULT_API_SERVER,
        debug=parse_bool(get("DEBUG", "")),
        drop_pending_updates=parse_bool(get("DROP_PENDING_UPDATES", "")),
        owner_id=parse_int(get("OWNER_ID", "")),
        message_dump=parse_int(get("MESSAGE_DUMP", "")),
        redis_address=get("REDIS_ADDRESS", "") or DEFAULT_REDIS_ADDRESS,
        redis_password=get("REDIS_PASSWORD", ""),
        redis_db=parse_int(get("REDIS_DB", "")),
        allowed_updates=_list_or_default(get("ALLOWED_UPDATES", ""), DEFAULT_ALLOWED_UPDATES),
        valid_lang_codes=_list_or_default(get("ENABLED_LOCALES", ""), DEFAULT_VALID_LANG_CODES),
        mongo_max_pool_size=parse_uint_env(environ, "MONGO_MAX_POOL_SIZE", 100),
        mongo_min_pool_size=parse_uint_env(environ, "MONGO_MIN_POOL_SIZE", 10),
        mongo_max_conn_idle_time=parse_duration_env(
            environ, "MONGO_MAX_CONN_IDLE_TIME", timedelta(seconds=30)
        ),
        mongo_max_idle_time=parse_duration_env(
            environ, "MONGO_MAX_IDLE_TIME", timedelta(seconds=30)
        ),
    )


class _JsonFormatter(logging.Formatter):
    """Render each record as one JSON object."""

    def __init__(self, pretty: bool, report_caller: bool) -> None:
        super().__init__()
        self.pretty = pretty
        self.report_caller = report_caller

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname.lower()
        entry: dict[str, str] = {
            "level": level,
            "msg": record.getMessage(),
            "time": datetime.fromtimestamp(record.created, timezone.utc)
            .astimezone()
            .isoformat(timespec="seconds"),
        }
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        if self.report_caller:
            entry["func"] = record.funcName
            entry["file"] = f"{os.path.basename(record.pathname)}:{record.lineno}"
        return json.dumps(entry, ensure_ascii=False, indent=2 if self.pretty else None)


def configure_logging(debug: bool) -> logging.Logger:
    """Set up the package logger with JSON output; verbose with caller info in debug mode."""
    logger = logging.getLogger("alita")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter(pretty=debug, report_caller=debug))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False
    return logger