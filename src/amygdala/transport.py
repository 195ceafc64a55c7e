"""Asynchronous HTTP transport used by :class:`~amygdala.client.Amygdala`.

The client only depends on the :class:`Transport` interface: a single
``request`` coroutine that performs one exchange and returns the decoded
response body. :class:`HttpxTransport` is the default implementation,
backed by :class:`httpx.AsyncClient`.

Transport failures are raised as :class:`~amygdala.exceptions.TransportError`
subclasses and are not retried; the client lets them propagate untouched.
"""

from __future__ import annotations

import abc
import logging
from typing import Any, Optional

import httpx

from amygdala.exceptions import AuthError, ConnectionError_, NotFoundError, ServerError
from amygdala.models import ClientConfig

logger = logging.getLogger(__name__)


class Transport(abc.ABC):
    """One request/response exchange with the remote API."""

    @abc.abstractmethod
    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[dict[str, Any]] = None,
        data: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """Send *method* to *url* and return the response body.

        Args:
            method: ``GET``, ``POST``, ``PUT`` or ``DELETE``.
            url: Absolute request URL.
            params: Query-string parameters.
            data: JSON-encoded request body.
            headers: Request headers.

        Returns:
            The decoded JSON body, the raw text for non-JSON responses, or
            ``None`` for an empty body.
        """

    async def aclose(self) -> None:
        """Release any resources held by the transport."""


class HttpxTransport(Transport):
    """Default :class:`Transport` backed by :class:`httpx.AsyncClient`.

    Args:
        config: Timeout and SSL settings.
        client: An existing :class:`httpx.AsyncClient` to use instead of
            creating one (it is then not closed by :meth:`aclose`). Tests
            pass one built on :class:`httpx.MockTransport`.

    Example::

        async with HttpxTransport(ClientConfig(timeout=10)) as transport:
            body = await transport.request("GET", "https://api.example.com/users/")
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._client = client
        self._owns_client = client is None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> HttpxTransport:
        self._ensure_client()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Request
    # ------------------------------------------------------------------ #

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[dict[str, Any]] = None,
        data: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        client = self._ensure_client()
        merged_headers: dict[str, str] = dict(headers or {})
        if data is not None:
            merged_headers.setdefault("Content-Type", "application/json")

        logger.debug("%s %s", method, url)
        try:
            response = await client.request(
                method,
                url,
                params=params or None,
                content=data,
                headers=merged_headers,
            )
        except httpx.RequestError as exc:
            raise ConnectionError_(f"Request failed: {exc}") from exc

        _map_response_error(response)
        return _response_body(response)

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
                follow_redirects=True,
            )
        return self._client


def _response_body(response: httpx.Response) -> Any:
    """Return the decoded JSON body, the raw text, or ``None`` when empty."""
    if not response.content:
        return None
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            # Left for the normalizer to reject as malformed.
            return response.text
    return response.text


def _map_response_error(response: httpx.Response) -> None:
    """Raise a typed exception for error HTTP status codes."""
    status = response.status_code
    if status < 400:
        return

    try:
        detail = response.json()
        if isinstance(detail, dict):
            msg = detail.get("message") or detail.get("error") or detail.get("detail") or ""
        else:
            msg = str(detail)
    except ValueError:
        msg = response.text[:200] if response.text else ""

    prefix = f"HTTP {status}"
    full_msg = f"{prefix}: {msg}" if msg else prefix

    if status in (401, 403):
        raise AuthError(full_msg)
    if status == 404:
        raise NotFoundError(full_msg)
    raise ServerError(full_msg)
