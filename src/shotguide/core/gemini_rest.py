"""Minimal async client for the ``generateContent`` REST endpoint.

Both backends (plan text and sketch images) speak the same wire protocol::

    POST {base}/v1beta/models/{model}:generateContent?key={api_key}

The caller owns the :class:`httpx.AsyncClient`, and with it the timeout
policy.  This module performs exactly one attempt per call: no retries, no
backoff.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import ShotguideConfig
from .errors import BackendError

logger = logging.getLogger(__name__)

_MAX_ERROR_TEXT = 2000


async def post_generate_content(
    client: httpx.AsyncClient,
    config: ShotguideConfig,
    model: str,
    body: dict[str, Any],
) -> dict[str, Any]:
    """POST *body* to the ``generateContent`` endpoint of *model*.

    Args:
        client: Shared HTTP client (carries the timeout policy).
        config: Configuration providing the base URL and API key.
        model: Model identifier.
        body: JSON request body.

    Returns:
        The decoded JSON response.

    Raises:
        ConfigurationError: If the API key is not configured.
        BackendError: On transport failure, non-success status (the status
            code is embedded in the message) or a non-JSON body.
    """
    api_key = config.require_api_key()
    url = config.generate_content_url(model)

    try:
        response = await client.post(
            url,
            params={"key": api_key},
            json=body,
            headers={"Content-Type": "application/json; charset=utf-8"},
        )
    except httpx.HTTPError as e:
        raise BackendError(f"Request to {model} failed: {e}") from e

    if response.is_error:
        message = _error_message(response)
        logger.error(f"Backend error from {model}: {response.status_code} - {message}")
        raise BackendError(
            f"Backend returned HTTP {response.status_code} for {model}: {message}",
            status_code=response.status_code,
            body=message,
        )

    try:
        data = response.json()
    except ValueError as e:
        raise BackendError(
            f"Backend returned a non-JSON body for {model}",
            status_code=response.status_code,
            body=response.text[:_MAX_ERROR_TEXT],
        ) from e

    if not isinstance(data, dict):
        raise BackendError(
            f"Backend returned unexpected JSON for {model}",
            status_code=response.status_code,
            body=data,
        )
    return data


def _error_message(response: httpx.Response) -> str:
    """Pull a readable message out of an error response."""
    text = response.text or ""
    try:
        data = response.json()
    except ValueError:
        return text[:_MAX_ERROR_TEXT] or "no details"
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        message = data["error"].get("message")
        if message:
            return str(message)
    return text[:_MAX_ERROR_TEXT] or "no details"


def iter_parts(response: dict[str, Any], first_only: bool = False):
    """Yield content parts of the response candidates in order.

    Args:
        response: Decoded ``generateContent`` response.
        first_only: Only yield parts of the first candidate.
    """
    candidates = response.get("candidates") or []
    if not isinstance(candidates, list):
        return
    if first_only:
        candidates = candidates[:1]
    for candidate in candidates:
        if not isinstance(candidate, dict):
            continue
        content = candidate.get("content") or {}
        parts = content.get("parts") if isinstance(content, dict) else None
        for part in parts or []:
            if isinstance(part, dict):
                yield part


def extract_text(response: dict[str, Any]) -> str:
    """Concatenate every text part of the first candidate."""
    return "".join(
        part["text"]
        for part in iter_parts(response, first_only=True)
        if isinstance(part.get("text"), str)
    )
