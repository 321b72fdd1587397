"""Minimal JSON-over-HTTP helpers for platform and bot APIs (urllib).

Error statuses are mapped onto the pipeline taxonomy: 429 and 5xx
responses, connection failures and timeouts raise ``TransientError``;
other 4xx responses raise ``PlatformError`` carrying the API's own
error message when one can be found in the body.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from pressroom.errors import PlatformError, TransientError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
USER_AGENT = "pressroom/0.1"


def _error_message(body: bytes) -> str:
    """Pull a human-readable message out of an API error body."""
    text = body.decode("utf-8", errors="replace").strip()
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return text[:300]
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            # Graph API and TikTok
            message = error.get("message") or error.get("code")
            if message:
                return str(message)
        for key in ("description", "message", "error_description"):
            if payload.get(key):
                return str(payload[key])
    return text[:300]


def request_json(
    method: str,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    form: dict[str, Any] | None = None,
    json_body: Any = None,
    headers: dict[str, str] | None = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> dict[str, Any]:
    """Send a request and decode a JSON object response.

    Raises:
        TransientError: On 429/5xx, network failure or timeout.
        PlatformError: On other error statuses or a non-object response.
    """
    if params:
        url = f"{url}?{urllib.parse.urlencode(params)}"

    all_headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    body: bytes | None = None
    if json_body is not None:
        body = json.dumps(json_body).encode("utf-8")
        all_headers["Content-Type"] = "application/json"
    elif form is not None:
        body = urllib.parse.urlencode(form).encode("utf-8")
        all_headers["Content-Type"] = "application/x-www-form-urlencoded"
    all_headers.update(headers or {})

    req = urllib.request.Request(url, data=body, method=method, headers=all_headers)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read()
    except urllib.error.HTTPError as exc:
        message = _error_message(exc.read())
        if exc.code == 429 or exc.code >= 500:
            raise TransientError(f"HTTP {exc.code}: {message}") from exc
        raise PlatformError(f"HTTP {exc.code}: {message}") from exc
    except (urllib.error.URLError, TimeoutError, OSError) as exc:
        raise TransientError(f"{method} {urllib.parse.urlsplit(url).netloc} failed: {exc}") from exc

    if not raw:
        return {}
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        host = urllib.parse.urlsplit(url).netloc
        raise PlatformError(f"invalid JSON response from {host}") from exc
    if not isinstance(payload, dict):
        raise PlatformError("expected a JSON object response")
    return payload


def download(url: str, *, timeout: int = DEFAULT_TIMEOUT) -> tuple[bytes, str]:
    """Fetch raw bytes and the response content type.

    Raises:
        TransientError: On any network or HTTP failure.
    """
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            content_type = resp.headers.get("Content-Type", "") or ""
            return resp.read(), content_type.split(";")[0].strip()
    except (urllib.error.URLError, TimeoutError, OSError) as exc:
        raise TransientError(f"download failed for {url}: {exc}") from exc
