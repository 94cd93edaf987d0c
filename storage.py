"""
Durable local storage for the admin console.

Holds the same fixed keys the admin panel keeps in browser storage:
the bearer token, the logged-in user and the UI preferences. Everything
goes through SessionStore / Preferences; nothing else reads the file.
"""
import hashlib
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

ADMIN_TOKEN_KEY = "adminToken"
ADMIN_USER_KEY = "adminUser"
LANGUAGE_KEY = "admin_language"
THEME_KEY = "admin_theme"

LANGUAGES = ("en", "vi")
THEMES = ("light", "dark")
DEFAULT_LANGUAGE = "vi"
DEFAULT_THEME = "light"


class LocalStorage:
    """JSON-file key/value store. ``path=None`` keeps everything in memory."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._data = self._read()

    def _read(self) -> dict:
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable storage file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(self._data, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self.path)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
            self._flush()

    def remove(self, *keys: str) -> None:
        with self._lock:
            changed = False
            for key in keys:
                if key in self._data:
                    del self._data[key]
                    changed = True
            if changed:
                self._flush()


class SessionStore:
    """The one authenticated session shared by every editor."""

    def __init__(self, storage: LocalStorage):
        self._storage = storage

    @property
    def token(self) -> Optional[str]:
        return self._storage.get(ADMIN_TOKEN_KEY)

    @property
    def user(self) -> Optional[dict]:
        return self._storage.get(ADMIN_USER_KEY)

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def set(self, token: str, user_id, username: str) -> None:
        self._storage.set(ADMIN_TOKEN_KEY, token)
        self._storage.set(ADMIN_USER_KEY, {"user_id": user_id, "username": username})
        logger.info("Session started for %s", username)

    def clear(self) -> None:
        if self.is_authenticated:
            logger.info("Session cleared")
        self._storage.remove(ADMIN_TOKEN_KEY, ADMIN_USER_KEY)

    def fingerprint(self) -> Optional[str]:
        token = self.token
        if token is None:
            return None
        return hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]


class Preferences:
    def __init__(self, storage: LocalStorage):
        self._storage = storage

    @property
    def language(self) -> str:
        value = self._storage.get(LANGUAGE_KEY)
        return value if value in LANGUAGES else DEFAULT_LANGUAGE

    @property
    def theme(self) -> str:
        value = self._storage.get(THEME_KEY)
        return value if value in THEMES else DEFAULT_THEME

    def set_language(self, language: str) -> None:
        if language not in LANGUAGES:
            raise ValueError(f"language must be one of {', '.join(LANGUAGES)}")
        self._storage.set(LANGUAGE_KEY, language)

    def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"theme must be one of {', '.join(THEMES)}")
        self._storage.set(THEME_KEY, theme)

    def toggle_language(self) -> str:
        self.set_language("en" if self.language == "vi" else "vi")
        return self.language

    def toggle_theme(self) -> str:
        self.set_theme("dark" if self.theme == "light" else "light")
        return self.theme

    def as_dict(self) -> dict:
        return {"language": self.language, "theme": self.theme}
