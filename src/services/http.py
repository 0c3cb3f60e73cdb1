"""Shared HTTP plumbing for the store and gateway clients.

One :class:`httpx.AsyncClient` is created by the application at startup and
passed to every client; these helpers wrap a single request and turn any
network or status failure into :class:`TransportError`.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from src.core.errors import TransportError


DEFAULT_TIMEOUT = 15.0


def build_http_client(timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    """Return the process-wide async client."""

    return httpx.AsyncClient(timeout=timeout)


async def send_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    context: str,
    params: Optional[Dict[str, Any]] = None,
    json_body: Optional[Any] = None,
    content: Optional[bytes] = None,
    headers: Optional[Dict[str, str]] = None,
) -> httpx.Response:
    """Perform one request and return the successful response.

    ``context`` names the operation in error messages (``"list Trello cards"``).

    Raises:
        TransportError: on network/protocol errors or a non-2xx status.
    """

    try:
        resp = await client.request(
            method,
            url,
            params=params,
            json=json_body,
            content=content,
            headers=headers,
        )
        resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise TransportError(
            f"Failed to {context}: {exc.response.status_code} - {exc.response.text}",
            status_code=exc.response.status_code,
        ) from exc
    except httpx.RequestError as exc:  # network or protocol error
        raise TransportError(f"Failed to {context}: {exc!r}") from exc
    return resp


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    context: str,
    params: Optional[Dict[str, Any]] = None,
    json_body: Optional[Any] = None,
    content: Optional[bytes] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Any:
    """Like :func:`send_request` but decode the JSON body (``None`` when empty)."""

    resp = await send_request(
        client,
        method,
        url,
        context=context,
        params=params,
        json_body=json_body,
        content=content,
        headers=headers,
    )
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError as exc:
        raise TransportError(f"Failed to {context}: response is not JSON") from exc
