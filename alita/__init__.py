"""Settings, MongoDB-backed stores and localisation for a Telegram group-management bot."""

__version__ = "2.1.3"