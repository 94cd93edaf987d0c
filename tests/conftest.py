from __future__ import annotations

import copy
import json
import secrets

import pytest
import requests

from config_client import ConfigClient
from storage import LocalStorage, SessionStore
from uploads import ImageUploadClient

BASE_URL = "http://config.test/endpoints"


def make_response(status: int, payload=None, raw: bytes | None = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = raw if raw is not None else json.dumps(payload).encode("utf-8")
    response.headers["Content-Type"] = "application/json"
    response.encoding = "utf-8"
    return response


class FakeConfigStore:
    """In-memory config store speaking the PHP endpoints' wire format."""

    def __init__(self):
        self.documents: dict = {}
        self.users = {"admin": "kulana2025"}
        self.tokens: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.failures: dict = {}
        self.upload_status = 200
        self.uploads: list[bytes] = []

    def fail(self, endpoint: str, failure) -> None:
        """Next call to endpoint returns this status code, raw body, or raises this exception."""
        self.failures[endpoint] = failure

    def writes(self) -> int:
        return sum(1 for _, endpoint in self.calls if endpoint == "update-config-secure.php")

    def request(self, method, url, params=None, json=None, data=None, headers=None, timeout=None):
        endpoint = url.rsplit("/", 1)[-1]
        self.calls.append((method, endpoint))
        failure = self.failures.pop(endpoint, None)
        if isinstance(failure, Exception):
            raise failure
        if isinstance(failure, int):
            return make_response(failure, {"success": False, "message": "Server error"})
        if isinstance(failure, bytes):
            return make_response(200, raw=failure)

        if endpoint == "login.php":
            return self._login(json or {})
        if endpoint == "get-config.php":
            return self._get(params or {})
        if not self._authorized(headers or {}):
            return make_response(401, {"success": False, "message": "Invalid authentication token."})
        if endpoint == "update-config-secure.php":
            self.documents[json["key"]] = copy.deepcopy(json["value"])
            return make_response(200, {"success": True, "message": "Config updated successfully"})
        if endpoint == "upload-image-secure.php":
            return self._upload(data)
        return make_response(404, {"success": False, "message": "Unknown endpoint"})

    def _authorized(self, headers) -> bool:
        auth = headers.get("Authorization", "")
        return auth.startswith("Bearer ") and auth.split(" ", 1)[1] in self.tokens

    def _login(self, body):
        if self.users.get(body.get("username")) != body.get("password"):
            return make_response(401, {"success": False, "message": "Invalid username or password"})
        token = secrets.token_hex(32)
        self.tokens.add(token)
        return make_response(200, {
            "success": True,
            "message": "Login successful",
            "data": {"user_id": 1, "username": body["username"], "token": token},
        })

    def _get(self, params):
        key = params.get("key")
        if key:
            if key not in self.documents:
                return make_response(404, {"success": False, "message": "Config not found"})
            return make_response(200, {
                "success": True,
                "data": {"key": key, "value": copy.deepcopy(self.documents[key]), "updated_at": "2025-01-01 00:00:00"},
            })
        return make_response(200, {
            "success": True,
            "data": {
                k: {"value": copy.deepcopy(v), "updated_at": "2025-01-01 00:00:00"}
                for k, v in self.documents.items()
            },
        })

    def _upload(self, data):
        body = b"".join(iter(lambda: data.read(1024), b""))
        self.uploads.append(body)
        if self.upload_status != 200:
            return make_response(self.upload_status, raw=b"<html>Internal Server Error</html>")
        return make_response(200, {
            "success": True,
            "message": "Image uploaded successfully",
            "data": {"url": f"https://cdn.test/uploads/{len(self.uploads)}.png"},
        })


@pytest.fixture
def store() -> FakeConfigStore:
    return FakeConfigStore()


@pytest.fixture
def session(tmp_path) -> SessionStore:
    return SessionStore(LocalStorage(str(tmp_path / "storage.json")))


@pytest.fixture
def client(store, session) -> ConfigClient:
    return ConfigClient(BASE_URL, session, http=store)


@pytest.fixture
def logged_in(client) -> ConfigClient:
    client.login("admin", "kulana2025")
    return client


@pytest.fixture
def uploader(client) -> ImageUploadClient:
    return ImageUploadClient(client)
