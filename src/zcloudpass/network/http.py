"""
Thin JSON-over-HTTP layer shared by the auth and sync clients.

Wraps an ``httpx.Client`` so that network failures surface as
:class:`TransportError` and non-2xx responses as :class:`HttpError`.
Nothing here retries.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx

from zcloudpass.config import ClientConfig
from zcloudpass.core.exceptions import HttpError, TransportError

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


def parse_error_response(response: httpx.Response, default_message: Optional[str] = None) -> HttpError:
    """Build an :class:`HttpError` from a failed response.

    The code comes from the body's ``error`` or ``code`` field; the message from
    ``message``, then ``error``, then the raw JSON. Non-JSON bodies use their
    text, and an empty body ``HTTP <status>``.
    """
    status = response.status_code
    code = None
    try:
        body = response.json()
    except ValueError:
        text = response.text
        message = text or default_message or f"HTTP {status}"
    else:
        if isinstance(body, dict):
            code = body.get("error") or body.get("code")
            message = body.get("message") or body.get("error") or json.dumps(body)
        else:
            message = json.dumps(body)
    if code is not None and not isinstance(code, str):
        code = str(code)
    return HttpError(str(message), code=code, status=status)


class ApiTransport:
    """Owns the HTTP client and knows the base and root URLs."""

    def __init__(self, config: Optional[ClientConfig] = None, client: Optional[httpx.Client] = None):
        self.config = config or ClientConfig()
        self.client = client or httpx.Client(timeout=self.config.timeout)

    @property
    def api_base(self) -> str:
        return self.config.api_base

    @property
    def root_base(self) -> str:
        return self.config.root_base

    def request(
        self,
        method: str,
        url: str,
        json_body: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Send one request; raise TransportError if no response arrives."""
        merged = dict(JSON_HEADERS)
        if headers:
            merged.update(headers)
        kwargs: Dict[str, Any] = {"headers": merged}
        if json_body is not None:
            kwargs["json"] = json_body
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            logger.warning("%s %s failed: %s", method, url, exc.__class__.__name__)
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        logger.debug("%s %s -> %d", method, url, response.status_code)
        return response

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "ApiTransport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
