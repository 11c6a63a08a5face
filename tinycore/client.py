"""Python client for the TinyCore KV HTTP API.

Usage:
    client = TinyCoreClient("http://localhost:3000")
    client.auth.login("me@example.com", "secret")  # stores the token
    client.kv.set("notes", "draft", {"text": "hello"})
    item = client.kv.get("notes", "draft")

Every failed call raises TinyCoreError carrying the server's error code.
"""

from typing import Any
from urllib.parse import quote

import requests

from tinycore.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class TinyCoreError(Exception):
    """A request failed, either at the server or on the way to it."""

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


def _segment(value: str) -> str:
    return quote(value, safe="")


class TinyCoreClient:
    """Holds the connection settings and the bearer token shared by the sub-clients."""

    def __init__(
        self,
        base_url: str,
        api_version: str = "v1",
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

        self.auth = AuthApi(self)
        self.apps = ApplicationsApi(self)
        self.kv = KVApi(self)

    @property
    def base_api_url(self) -> str:
        return f"{self.base_url}/api/{self.api_version}"

    def set_token(self, token: str | None) -> None:
        self.token = token

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            TinyCoreError: Transport failure, or a non-2xx response
        """
        url = f"{self.base_api_url}{endpoint}"
        try:
            response = self.session.request(
                method,
                url,
                json=json,
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(
                "TinyCore request failed", extra={"method": method, "url": url, "error": str(e)}
            )
            raise TinyCoreError(f"Failed to connect to {self.base_url}") from e

        if response.status_code >= 400:
            raise self._error_from_response(response)

        return response.json()

    @staticmethod
    def _error_from_response(response: requests.Response) -> TinyCoreError:
        message = f"HTTP {response.status_code}"
        code = None
        try:
            body = response.json()
        except ValueError:
            body = None

        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            message = error.get("message") or message
            code = error.get("code")
        elif isinstance(error, str):
            message = error

        logger.debug(
            "TinyCore API error",
            extra={"status_code": response.status_code, "code": code, "error": message},
        )
        return TinyCoreError(message, status_code=response.status_code, code=code)

    def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        return self.request("GET", endpoint, params=params)

    def post(self, endpoint: str, data: Any = None) -> Any:
        return self.request("POST", endpoint, json=data)

    def put(self, endpoint: str, data: Any = None) -> Any:
        return self.request("PUT", endpoint, json=data)

    def delete(self, endpoint: str) -> Any:
        return self.request("DELETE", endpoint)


class AuthApi:
    def __init__(self, client: TinyCoreClient) -> None:
        self._client = client

    def registration_status(self) -> dict[str, bool]:
        return self._client.get("/users/registration-status")

    def register(
        self, email: str, password: str, metadata: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Create an account. The returned token is not stored; call login for that."""
        return self._client.post(
            "/users/register", {"email": email, "password": password, "metadata": metadata}
        )

    def login(self, email: str, password: str) -> dict[str, Any]:
        """Sign in and use the returned token for every later request."""
        response = self._client.post("/users/login", {"email": email, "password": password})
        self._client.set_token(response["token"])
        return response

    def profile(self) -> dict[str, Any]:
        return self._client.get("/users/me")

    def logout(self) -> None:
        # Tokens are stateless, forgetting it is all there is to do
        self._client.set_token(None)


class ApplicationsApi:
    def __init__(self, client: TinyCoreClient) -> None:
        self._client = client

    def get(self, app_id: str) -> dict[str, Any]:
        return self._client.get(f"/apps/{_segment(app_id)}")

    def list(self) -> list[dict[str, Any]]:
        return self._client.get("/apps")

    def create(
        self, app_id: str, name: str, metadata: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return self._client.post("/apps", {"id": app_id, "name": name, "metadata": metadata})

    def update(
        self, app_id: str, name: str, metadata: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return self._client.put(
            f"/apps/{_segment(app_id)}", {"name": name, "metadata": metadata}
        )

    def delete(self, app_id: str) -> dict[str, Any]:
        return self._client.delete(f"/apps/{_segment(app_id)}")


class KVApi:
    def __init__(self, client: TinyCoreClient) -> None:
        self._client = client

    def get(self, app_id: str, key: str) -> dict[str, Any]:
        return self._client.get(f"/kv/{_segment(app_id)}/{_segment(key)}")

    def set(
        self, app_id: str, key: str, value: Any, metadata: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return self._client.put(
            f"/kv/{_segment(app_id)}/{_segment(key)}", {"value": value, "metadata": metadata}
        )

    def delete(self, app_id: str, key: str) -> dict[str, Any]:
        return self._client.delete(f"/kv/{_segment(app_id)}/{_segment(key)}")

    def list(self, app_id: str, prefix: str | None = None) -> list[dict[str, Any]]:
        params = {"prefix": prefix} if prefix else None
        return self._client.get(f"/kv/{_segment(app_id)}", params=params)
