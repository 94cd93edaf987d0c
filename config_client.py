"""
Client for the remote configuration store.

The store keeps one JSON document per key ("home", "team", "projects",
"faq", "footer", "page_settings") behind four PHP endpoints:

- login.php                 POST {username, password}
- get-config.php?key=...    GET, unauthenticated, no key = everything
- update-config-secure.php  POST {key, value}, bearer token
- upload-image-secure.php   POST multipart "image", bearer token
"""
import logging
from typing import Any, Dict, Optional, Union

import requests
from pydantic import BaseModel, ValidationError

from settings import CONFIG_API_TIMEOUT
from storage import SessionStore

logger = logging.getLogger(__name__)

LOGIN_ENDPOINT = "login.php"
GET_CONFIG_ENDPOINT = "get-config.php"
UPDATE_CONFIG_ENDPOINT = "update-config-secure.php"
UPLOAD_IMAGE_ENDPOINT = "upload-image-secure.php"


class ConfigError(Exception):
    """Base class for every failure talking to the config store."""


class NetworkFailure(ConfigError):
    pass


class MalformedResponse(ConfigError):
    pass


class ServiceError(ConfigError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class Unauthorized(ConfigError):
    pass


class LoginFailed(ConfigError):
    pass


class LoginResult(BaseModel):
    token: str
    user_id: Union[int, str]
    username: str


class ConfigClient:
    def __init__(
        self,
        base_url: str,
        session: SessionStore,
        http: Optional[requests.Session] = None,
        timeout: float = CONFIG_API_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.http = http or requests.Session()
        self.timeout = timeout

    def url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint}"

    # Transport helpers

    def send(self, method: str, endpoint: str, timeout: Optional[float] = None, **kwargs) -> requests.Response:
        try:
            return self.http.request(method, self.url(endpoint), timeout=timeout or self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, endpoint, e)
            raise NetworkFailure(f"Could not reach the config store: {e}") from e

    @staticmethod
    def parse_json(response: requests.Response) -> dict:
        try:
            body = response.json()
        except ValueError as e:
            raise MalformedResponse(f"Response is not JSON (status {response.status_code})") from e
        if not isinstance(body, dict):
            raise MalformedResponse("Response body is not a JSON object")
        return body

    def auth_headers(self) -> Dict[str, str]:
        token = self.session.token
        if not token:
            raise Unauthorized("Authentication required. Please login.")
        return {"Authorization": f"Bearer {token}"}

    def check_unauthorized(self, response: requests.Response) -> None:
        """A 401 always ends the session; the stale token is never retried."""
        if response.status_code != 401:
            return
        message = "Session expired. Please login again."
        try:
            message = response.json().get("message") or message
        except (ValueError, AttributeError):
            pass
        logger.warning("Config store rejected the bearer token; clearing session")
        self.session.clear()
        raise Unauthorized(message)

    # Operations

    def login(self, username: str, password: str) -> LoginResult:
        if not username or not password:
            raise LoginFailed("Username and password are required")
        response = self.send("POST", LOGIN_ENDPOINT, json={"username": username, "password": password})
        body = self.parse_json(response)
        if not body.get("success"):
            raise LoginFailed(body.get("message") or "Invalid username or password")
        try:
            result = LoginResult.model_validate(body.get("data") or {})
        except ValidationError as e:
            raise MalformedResponse("Login response is missing token or user") from e
        self.session.set(result.token, result.user_id, result.username)
        return result

    def logout(self) -> None:
        self.session.clear()

    def fetch_document(self, key: str) -> Optional[Any]:
        """Return the stored document for ``key``, or None when it was never written."""
        response = self.send("GET", GET_CONFIG_ENDPOINT, params={"key": key})
        if response.status_code == 404:
            return None
        body = self.parse_json(response)
        if response.status_code >= 400:
            raise ServiceError(body.get("message") or f"Failed to load {key}", response.status_code)
        if not body.get("success"):
            return None
        data = body.get("data")
        if not isinstance(data, dict) or "value" not in data:
            raise MalformedResponse(f"Config response for {key} has no value")
        return data["value"]

    def fetch_all_documents(self) -> Dict[str, Any]:
        response = self.send("GET", GET_CONFIG_ENDPOINT)
        body = self.parse_json(response)
        if response.status_code >= 400 or not body.get("success"):
            raise ServiceError(body.get("message") or "Failed to load configs", response.status_code)
        data = body.get("data") or {}
        if not isinstance(data, dict):
            raise MalformedResponse("Config listing is not an object")
        documents = {}
        for key, entry in data.items():
            if not isinstance(entry, dict) or "value" not in entry:
                raise MalformedResponse(f"Config entry {key} has no value")
            documents[key] = entry["value"]
        return documents

    def write_document(self, key: str, value: Any) -> None:
        """Replace the whole stored document for ``key``."""
        headers = self.auth_headers()
        response = self.send("POST", UPDATE_CONFIG_ENDPOINT, json={"key": key, "value": value}, headers=headers)
        self.check_unauthorized(response)
        body = self.parse_json(response)
        if response.status_code >= 400 or not body.get("success"):
            message = body.get("message") or f"Failed to save {key}"
            logger.warning("Write of %s rejected (%s): %s", key, response.status_code, message)
            raise ServiceError(message, response.status_code)
        logger.info("Saved config %s", key)
