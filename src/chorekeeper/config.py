"""Configuration management for Chorekeeper."""

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

logger = logging.getLogger(__name__)

CHOREKEEPER_HOME = Path(os.environ.get("CHOREKEEPER_HOME", Path.home() / "chorekeeper"))
CONFIG_FILE = CHOREKEEPER_HOME / "config" / "chorekeeper.conf"
DATA_DIR = CHOREKEEPER_HOME / "data"


@dataclass
class Config:
    """Chorekeeper configuration."""

    timezone: str = "America/Toronto"
    default_reminder_offset: int = 30  # minutes
    follow_up_days: int = 10
    audit_capacity: int = 50
    undo_capacity: int = 20
    store_file: str = ""
    reminder_title: str = "Upcoming: {title}"
    sync_interval: int = 60  # seconds
    # Telegram delivery settings
    telegram_bot_token: str = ""
    telegram_allowed_users: list[int] = field(default_factory=list)

    @property
    def reminder_offset(self) -> timedelta:
        return timedelta(minutes=self.default_reminder_offset)

    @property
    def store_path(self) -> Path:
        if self.store_file:
            return Path(self.store_file).expanduser()
        return DATA_DIR / "items.json"


def _parse_value(value: str) -> str:
    # Handle quoted values with inline comments: "value" # comment
    if value.startswith('"'):
        end_quote = value.find('"', 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    if value.startswith("'"):
        end_quote = value.find("'", 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    # Unquoted: strip inline comments
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def _parse_int(key: str, value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {key.upper()}: {value!r}, using {default}")
        return default


def load_config(path: Path | None = None) -> Config:
    """Load configuration from chorekeeper.conf file."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _parse_value(value.strip())

        match key:
            case "timezone":
                config.timezone = value
            case "default_reminder_offset":
                config.default_reminder_offset = _parse_int(key, value, config.default_reminder_offset)
            case "follow_up_days":
                config.follow_up_days = _parse_int(key, value, config.follow_up_days)
            case "audit_capacity":
                config.audit_capacity = _parse_int(key, value, config.audit_capacity)
            case "undo_capacity":
                config.undo_capacity = _parse_int(key, value, config.undo_capacity)
            case "store_file":
                config.store_file = value
            case "reminder_title":
                config.reminder_title = value
            case "sync_interval":
                config.sync_interval = _parse_int(key, value, config.sync_interval)
            case "telegram_bot_token":
                config.telegram_bot_token = value
            case "telegram_allowed_users":
                users = []
                for u in value.split(","):
                    if u.strip():
                        users.append(_parse_int(key, u.strip(), 0))
                config.telegram_allowed_users = [u for u in users if u]
            case _:
                logger.debug(f"Ignoring unknown config key {key.upper()}")

    return config
