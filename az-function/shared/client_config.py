"""Client configuration for the inventory tracking front end.

The configuration is built once per page load (or client start) by
``load_client_config`` and handed to consumers by reference. The only
state it touches is the per-client user identifier, kept in whatever
key-value storage the caller injects.
"""

import json
import logging
import os
import random
import string
import time
from dataclasses import dataclass
from http.cookies import CookieError, SimpleCookie
from typing import Any, Dict, List, Optional, Protocol

from .settings import Settings, load_settings

logger = logging.getLogger("client_config")

USER_ID_KEY = "userId"
USER_ID_SUFFIX_LEN = 9
COOKIE_MAX_AGE_S = 10 * 365 * 24 * 3600

_SUFFIX_ALPHABET = string.digits + string.ascii_lowercase


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value


class JsonFileStorage:
    """Profile storage backed by a JSON object file.

    A missing or unreadable file reads as empty. Writes rewrite the whole
    file; an OSError from the write propagates to the caller.
    """

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}

    def get_item(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as fh:
            json.dump(data, fh)


class CookieStorage:
    """Browser-profile storage seen from the server: request cookies in, Set-Cookie out."""

    def __init__(self, cookie_header: Optional[str] = None):
        self._cookies = SimpleCookie()
        if cookie_header:
            try:
                self._cookies.load(cookie_header)
            except CookieError:
                logger.debug("ignoring malformed Cookie header")
        self._pending: List[str] = []

    def get_item(self, key: str) -> Optional[str]:
        morsel = self._cookies.get(key)
        return morsel.value if morsel is not None else None

    def set_item(self, key: str, value: str) -> None:
        self._cookies[key] = value
        self._pending.append(f"{key}={value}; Path=/; Max-Age={COOKIE_MAX_AGE_S}; SameSite=Lax")

    @property
    def set_cookie_headers(self) -> List[str]:
        return list(self._pending)


@dataclass(frozen=True)
class ClientConfig:
    endpoint: str
    heartbeat_interval_ms: int
    polling_interval_ms: int
    user_id: str

    def to_dict(self) -> Dict[str, Any]:
        # Key names are the ones the browser code reads.
        return {
            "GOOGLE_SCRIPT_URL": self.endpoint,
            "HEARTBEAT_INTERVAL": self.heartbeat_interval_ms,
            "POLLING_INTERVAL": self.polling_interval_ms,
            "USER_ID": self.user_id,
        }


def generate_user_id(now_ms: Optional[int] = None, rng: Optional[random.Random] = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    rng = rng or random.Random()
    suffix = "".join(rng.choice(_SUFFIX_ALPHABET) for _ in range(USER_ID_SUFFIX_LEN))
    return f"user_{now_ms}_{suffix}"


def resolve_user_id(storage: KeyValueStorage) -> str:
    existing = storage.get_item(USER_ID_KEY)
    if existing:
        return existing
    user_id = generate_user_id()
    try:
        storage.set_item(USER_ID_KEY, user_id)
    except Exception as e:
        # Storage is external; an unpersisted id is still usable for this load.
        logger.debug("user_id_not_persisted", extra={"error_type": type(e).__name__})
    return user_id


def load_client_config(storage: KeyValueStorage, settings: Optional[Settings] = None) -> ClientConfig:
    settings = settings or load_settings()
    return ClientConfig(
        endpoint=settings.client_endpoint,
        heartbeat_interval_ms=settings.heartbeat_interval_ms,
        polling_interval_ms=settings.polling_interval_ms,
        user_id=resolve_user_id(storage),
    )
