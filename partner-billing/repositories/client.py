"""
Billing store HTTP client.

This module contains *only* the connection setup for the external REST API and
a single request helper that the repository modules use.

Environment variables:
- BILLING_API_URL: Base URL of the store API, e.g. http://localhost:5000/api (required)
- BILLING_API_TOKEN: Bearer token sent with every request (optional)
- BILLING_API_TIMEOUT: Request timeout in seconds (optional, default 30)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping, Optional

import httpx
from dotenv import load_dotenv

# Load environment variables from .env file
# Look for .env in the partner-billing directory
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DEFAULT_TIMEOUT_SECONDS: float = 30.0

_client: Optional[httpx.Client] = None


class StoreRequestError(RuntimeError):
    """
    Raised when the store cannot be reached or answers with an error status.

    store_message is the store's own `message` field when it sent one.
    status_code is None for network errors and timeouts.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        store_message: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.store_message = store_message


def _create_client() -> httpx.Client:
    base_url = os.getenv("BILLING_API_URL")
    if not base_url:
        raise RuntimeError(
            "Missing environment variable: BILLING_API_URL. "
            "Set BILLING_API_URL to the base URL of the billing store API."
        )

    headers = {"Content-Type": "application/json", "Accept": "application/json"}
    token = os.getenv("BILLING_API_TOKEN")
    if token:
        headers["Authorization"] = f"Bearer {token}"

    timeout = float(os.getenv("BILLING_API_TIMEOUT") or DEFAULT_TIMEOUT_SECONDS)
    return httpx.Client(base_url=base_url, headers=headers, timeout=timeout)


def get_client() -> httpx.Client:
    """Return the shared client, creating it from the environment on first use."""

    global _client
    if _client is None:
        _client = _create_client()
    return _client


def set_client(client: Optional[httpx.Client]) -> None:
    """Replace the shared client (None resets it to the environment-configured one)."""

    global _client
    _client = client


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, Mapping):
        message = body.get("message") or body.get("error")
        if message:
            return str(message)
    return None


def send(
    method: str,
    path: str,
    *,
    params: Optional[Mapping[str, Any]] = None,
    json: Optional[Any] = None,
) -> httpx.Response:
    """
    Send a request to the store and return the successful response.

    Parameters whose value is None are not sent.

    Raises:
        StoreRequestError: on network errors, timeouts and non-2xx responses
    """

    query = {k: v for k, v in (params or {}).items() if v is not None}
    try:
        response = get_client().request(method, path, params=query or None, json=json)
    except httpx.HTTPError as exc:
        raise StoreRequestError(f"{method} {path} failed: {exc}") from exc

    if response.is_error:
        store_message = _error_message(response)
        raise StoreRequestError(
            store_message or f"{method} {path} returned HTTP {response.status_code}",
            status_code=response.status_code,
            store_message=store_message,
        )
    return response


def request_json(
    method: str,
    path: str,
    *,
    params: Optional[Mapping[str, Any]] = None,
    json: Optional[Any] = None,
) -> Any:
    """Like send(), returning the decoded JSON body."""

    response = send(method, path, params=params, json=json)
    try:
        return response.json()
    except ValueError as exc:
        raise StoreRequestError(f"{method} {path} returned invalid JSON", status_code=response.status_code) from exc


def unwrap(body: Any, key: str) -> Mapping[str, Any]:
    """
    Return body[key] when the store wrapped the object (`{"invoice": {...}}`),
    otherwise the body itself.
    """

    if isinstance(body, Mapping) and isinstance(body.get(key), Mapping):
        return body[key]
    if isinstance(body, Mapping):
        return body
    raise StoreRequestError(f"Unexpected response shape for {key}")


__all__ = [
    "StoreRequestError",
    "get_client",
    "set_client",
    "send",
    "request_json",
    "unwrap",
]
