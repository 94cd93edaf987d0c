from __future__ import annotations

import json

import pytest

from storage import ADMIN_TOKEN_KEY, LocalStorage, Preferences, SessionStore


def test_session_survives_reload(tmp_path) -> None:
    path = str(tmp_path / "storage.json")
    SessionStore(LocalStorage(path)).set("t" * 64, 7, "admin")

    reloaded = SessionStore(LocalStorage(path))
    assert reloaded.token == "t" * 64
    assert reloaded.user == {"user_id": 7, "username": "admin"}
    assert json.loads((tmp_path / "storage.json").read_text())[ADMIN_TOKEN_KEY] == "t" * 64


def test_clear_removes_token_and_user() -> None:
    session = SessionStore(LocalStorage())
    session.set("abc", 1, "admin")
    session.clear()
    assert session.token is None
    assert session.user is None
    assert session.fingerprint() is None


def test_fingerprint_changes_with_token() -> None:
    session = SessionStore(LocalStorage())
    session.set("first", 1, "admin")
    first = session.fingerprint()
    session.set("second", 1, "admin")
    assert session.fingerprint() != first


def test_preferences_default_and_toggle() -> None:
    storage = LocalStorage()
    prefs = Preferences(storage)
    assert prefs.as_dict() == {"language": "vi", "theme": "light"}
    assert prefs.toggle_language() == "en"
    assert prefs.toggle_theme() == "dark"


def test_preferences_are_independent_of_session() -> None:
    storage = LocalStorage()
    prefs = Preferences(storage)
    session = SessionStore(storage)
    prefs.set_theme("dark")
    session.set("abc", 1, "admin")
    session.clear()
    assert prefs.theme == "dark"


def test_preferences_reject_unknown_values() -> None:
    prefs = Preferences(LocalStorage())
    with pytest.raises(ValueError):
        prefs.set_language("fr")


def test_unreadable_storage_file_starts_empty(tmp_path) -> None:
    path = tmp_path / "storage.json"
    path.write_text("{not json")
    assert LocalStorage(str(path)).get(ADMIN_TOKEN_KEY) is None
