"""Per-session client context.

Everything the pipeline components share (HTTP client, credential headers,
query cache, navigation and notification hooks) lives on one explicitly
constructed object that is passed in, created at login and closed at logout.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import httpx

from client.confidence import ConfidencePolicy
from client.errors import ClientError, ValidationError, classify_exception, classify_response
from client.settings import ClientSettings

logger = logging.getLogger(__name__)

Navigator = Callable[[str], None]
Notifier = Callable[[ClientError], None]


class QueryCache:
    """Keyed cache of fetched data with invalidation listeners."""

    def __init__(self):
        self._entries: dict[str, Any] = {}
        self._listeners: list[Callable[[str], None]] = []

    def get(self, key: str, default: Any = None) -> Any:
        return self._entries.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = value

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)
        for listener in list(self._listeners):
            listener(key)

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        """Register an invalidation listener; returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)


class ClientContext:
    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        navigate: Optional[Navigator] = None,
        notify: Optional[Notifier] = None,
        cache: Optional[QueryCache] = None,
    ):
        self.settings = settings or ClientSettings()
        self.cache = cache or QueryCache()
        self.confidence = ConfidencePolicy(
            high=self.settings.confidence_high,
            medium=self.settings.confidence_medium,
        )
        self.location: Optional[str] = None
        self._navigate = navigate
        self._notify = notify
        self.http = httpx.AsyncClient(
            base_url=self.settings.base_url,
            headers=self._credential_headers(),
            timeout=self.settings.request_timeout_s,
            transport=transport,
        )

    def _credential_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.settings.api_token:
            headers["Authorization"] = f"Bearer {self.settings.api_token}"
        if self.settings.tenant_id:
            headers["X-Tenant-ID"] = self.settings.tenant_id
        if self.settings.user_id:
            headers["X-User-ID"] = self.settings.user_id
        return headers

    async def request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        """Send a request and return the decoded JSON body.

        Raises:
            ClientError: The matching subclass for transport or HTTP failures.
        """
        try:
            response = await self.http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise classify_exception(exc) from exc
        return self.decode(response)

    @staticmethod
    def decode(response: httpx.Response) -> dict[str, Any]:
        error = classify_response(response)
        if error is not None:
            raise error
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as exc:
            raise ClientError("Malformed response from server", status_code=response.status_code) from exc
        return body if isinstance(body, dict) else {"data": body}

    def navigate(self, path: str) -> None:
        self.location = path
        if self._navigate is not None:
            self._navigate(path)

    def notify(self, error: ClientError) -> None:
        """Report a non-validation failure to the user; validation stays local."""
        if isinstance(error, ValidationError):
            return
        logger.warning("%s: %s", type(error).__name__, error.message)
        if self._notify is not None:
            self._notify(error)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "ClientContext":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
