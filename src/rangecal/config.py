"""YAML configuration loading."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any

import yaml

from .auth import User
from .dates import parse_time
from .grid import MONDAY, SUNDAY

logger = logging.getLogger("rangecal")

CONFIG_PATH = os.environ.get("RANGECAL_CONFIG", "/config/rangecal.yaml")

VALID_STORE_TYPES = {"file", "caldav", "google"}
WEEK_STARTS = {"sunday": SUNDAY, "monday": MONDAY}
DEFAULT_EVENTS_FILE = "/data/rangecal_events.json"


@dataclass
class Settings:
    """Store selection, known users and calendar display options."""

    store_type: str = "file"
    store: dict[str, Any] = field(default_factory=lambda: {"path": DEFAULT_EVENTS_FILE})
    users: list[User] = field(default_factory=list)
    week_start: int = SUNDAY
    default_start_time: str = "09:00"
    default_end_time: str = "10:00"


def _load_store(raw: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    store_type = str(raw.get("type", "")).strip().lower()
    if store_type not in VALID_STORE_TYPES:
        raise ValueError(f"Store: unknown type '{store_type}'. Must be one of: {VALID_STORE_TYPES}")

    config = {k: v for k, v in raw.items() if k != "type"}

    if store_type == "file":
        config.setdefault("path", DEFAULT_EVENTS_FILE)

    elif store_type == "caldav":
        if "url" not in config:
            raise ValueError("Store (caldav): 'url' is required")
        if "username_env" not in config or "password_env" not in config:
            raise ValueError("Store (caldav): 'username_env' and 'password_env' are required")
        for env_key in ("username_env", "password_env"):
            env_var = config[env_key]
            if not os.environ.get(env_var):
                logger.warning("Store: env var '%s' not set", env_var)

    elif store_type == "google":
        if "credentials_file" not in config:
            raise ValueError("Store (google): 'credentials_file' is required")

    return store_type, config


def _load_users(raw: list[dict[str, Any]]) -> list[User]:
    users: list[User] = []
    seen_emails: set[str] = set()
    for entry in raw:
        email = str(entry.get("email", "")).strip()
        if not email:
            raise ValueError("User missing 'email' field")
        if email.lower() in seen_emails:
            raise ValueError(f"Duplicate user email: '{email}'")
        seen_emails.add(email.lower())
        if entry.get("id") is None:
            raise ValueError(f"User '{email}': 'id' is required")
        users.append(User(id=int(entry["id"]), email=email))
    return users


def load_config() -> Settings:
    """Load and validate the config file.

    A missing file yields default settings (JSON file store, no users).
    """
    path = CONFIG_PATH
    if not os.path.isfile(path):
        logger.warning("Config file not found: %s", path)
        return Settings()

    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}

    settings = Settings()

    if "store" in raw:
        settings.store_type, settings.store = _load_store(raw["store"] or {})
    else:
        logger.warning("No 'store' key in config file, using %s", DEFAULT_EVENTS_FILE)

    settings.users = _load_users(raw.get("users") or [])

    cal = raw.get("calendar") or {}
    week_start = str(cal.get("week_start", "sunday")).strip().lower()
    if week_start not in WEEK_STARTS:
        raise ValueError(f"Invalid week_start '{week_start}'. Must be one of: {set(WEEK_STARTS)}")
    settings.week_start = WEEK_STARTS[week_start]

    for key in ("default_start_time", "default_end_time"):
        if key in cal:
            value = str(cal[key])
            parse_time(value)
            setattr(settings, key, value)
    if parse_time(settings.default_end_time) <= parse_time(settings.default_start_time):
        raise ValueError("default_end_time must be after default_start_time")

    return settings
