"""
core/adapters/rest_adapter.py
-----------------------------
Token-based HTTP adapter for repositories that expose a REST service.

Design Decisions:
    * One login call yields a short-lived bearer token. Login failure of
      any kind aborts the whole discovery with a connection error.
    * The six object-kind reads are independent, so they are fanned out on
      a small thread pool and fanned back in into one payload.
    * A failed read for one kind degrades to an empty list; partial
      discovery is acceptable, a refused login is not.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any

import requests
from requests.exceptions import RequestException, Timeout

from config import CONFIG
from core.adapters.base import RepositoryAdapter
from logger import get_logger
from shared.errors import RepositoryConnectionError, RepositoryTimeoutError
from shared.models import ObjectKind, RawDiscoveryPayload, RepositoryConnection
from shared.utils import build_endpoint

log = get_logger(__name__)


class RestRepositoryAdapter(RepositoryAdapter):
    """
    Repository adapter driving the REST protocol.

    Example::

        adapter = RestRepositoryAdapter(timeout=5)
        if adapter.test_connection(conn):
            payload = adapter.discover(conn)
    """

    def __init__(
        self,
        timeout: float | None = None,
        max_workers: int | None = None,
        scheme: str | None = None,
        api_prefix: str | None = None,
    ) -> None:
        super().__init__(timeout)
        self.max_workers = max_workers or CONFIG.adapter.rest_max_workers
        self.scheme = scheme or CONFIG.adapter.rest_scheme
        self.api_prefix = api_prefix if api_prefix is not None else CONFIG.adapter.rest_api_prefix

    def base_url(self, connection: RepositoryConnection) -> str:
        return f"{self.scheme}://{connection.host}:{connection.port}{self.api_prefix}"

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------

    def test_connection(self, connection: RepositoryConnection) -> bool:
        url = f"{self.base_url(connection)}/health"
        try:
            response = requests.get(url, timeout=self.timeout)
        except RequestException as exc:
            log.warning(
                "REST connection test failed for %s: %s",
                build_endpoint(connection.host, connection.port), exc,
            )
            return False
        return response.ok

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover(self, connection: RepositoryConnection) -> RawDiscoveryPayload:
        """
        Authenticate, then read every object kind in parallel.

        Raises:
            RepositoryTimeoutError: If the login call times out.
            RepositoryConnectionError: If the login call fails or is refused.
        """
        base_url = self.base_url(connection)
        token = self._authenticate(connection, base_url)

        log.info(
            "Discovering repository '%s' via REST at %s",
            connection.repository_name, build_endpoint(connection.host, connection.port),
        )
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {
                kind: pool.submit(self._read_kind, base_url, token, kind)
                for kind in ObjectKind
            }
            records = {kind.plural: future.result() for kind, future in futures.items()}

        payload = RawDiscoveryPayload(**records)
        log.info("REST discovery returned %d raw record(s): %s", payload.total, payload.counts())
        return payload

    def _authenticate(self, connection: RepositoryConnection, base_url: str) -> str:
        body = {
            "username": connection.username,
            "repositoryName": connection.repository_name,
        }
        password = self.resolve_password(connection)
        if password is not None:
            body["password"] = password

        endpoint = build_endpoint(connection.host, connection.port, connection.username)
        try:
            response = requests.post(f"{base_url}/auth/login", json=body, timeout=self.timeout)
        except Timeout as exc:
            raise RepositoryTimeoutError(
                f"Authentication timed out after {self.timeout}s ({endpoint})"
            ) from exc
        except RequestException as exc:
            raise RepositoryConnectionError(f"Repository unreachable ({endpoint}): {exc}") from exc

        if not response.ok:
            raise RepositoryConnectionError(
                f"Authentication failed ({endpoint}): HTTP {response.status_code}"
            )
        try:
            token = response.json().get("token")
        except ValueError as exc:
            raise RepositoryConnectionError(f"Authentication returned invalid JSON ({endpoint})") from exc
        if not token:
            raise RepositoryConnectionError(f"Authentication returned no token ({endpoint})")
        return token

    def _read_kind(self, base_url: str, token: str, kind: ObjectKind) -> list[dict[str, Any]]:
        """Read one object kind; any failure yields an empty list."""
        try:
            response = requests.get(
                f"{base_url}/{kind.plural}",
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except RequestException as exc:
            log.warning("REST read of %s failed, continuing without them: %s", kind.plural, exc)
            return []

        if not response.ok:
            log.warning("REST read of %s returned HTTP %s", kind.plural, response.status_code)
            return []

        try:
            data = response.json()
        except ValueError:
            log.warning("REST read of %s returned invalid JSON", kind.plural)
            return []

        items = data.get(kind.plural) if isinstance(data, dict) else data
        if not isinstance(items, list):
            return []
        return [item for item in items if isinstance(item, dict)]
