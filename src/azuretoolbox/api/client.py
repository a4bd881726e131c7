from __future__ import annotations

import json
import logging
import random
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Final, Mapping

import requests

from azuretoolbox.azure.auth.interfaces import TokenProvider
from azuretoolbox.azure.auth.token import Token

logger = logging.getLogger(__name__)

RETRY_STATUS_CODES: Final[frozenset[int]] = frozenset({429, 500, 502, 503, 504})
CONTENT_KINDS: Final[tuple[str, ...]] = ("body", "headers", "response", "request")


class ApiError(Exception):
    """Raised when a request still fails after all retries.

    Attributes:
        status_code: HTTP status, or ``None`` when no response was received.
        body: Response text (or the transport error message).
        url: The requested URL.
    """

    def __init__(self, status_code: int | None, body: str, url: str) -> None:
        self.status_code = status_code
        self.body = body
        self.url = url
        status = f"HTTP {status_code}" if status_code is not None else "Request"
        super().__init__(f"{status} error for {url}: {body}")


def backoff_default(attempt: int, max_time: float = 60.0, base: float = 2.5) -> float:
    """Seconds to wait before retry ``attempt`` (1-based), with jitter."""
    return round(min(random.uniform(1.0, base**attempt), max_time), 1)


def retry_after_seconds(value: str | None) -> float | None:
    """Parse a ``Retry-After`` header (seconds or HTTP date)."""
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max((when - datetime.now(timezone.utc)).total_seconds(), 0.0)


def drop_none(data: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


def _identity(body: Any) -> Any:
    return body


class ApiClient:
    """Authenticated JSON client for a single REST API host.

    Requests are authorised with ``credentials`` (any callable taking and
    returning a request) or, failing that, with ``provider.req_auth``.
    Connection errors and 429/5xx responses are retried.

    Args:
        host_url: Base URL every path is appended to.
        provider: Token provider, e.g. a credential or ``DefaultCredential``.
        credentials: Request authoriser; wins over ``provider``.
        timeout: Read timeout in seconds.
        connecttimeout: Connect timeout in seconds.
        max_tries: Attempts per request, including the first one.
        response_handler: Post-processes every parsed response body.
        session: ``requests.Session`` to send through.

    Example:
        >>> client = ApiClient(
        ...     "https://graph.microsoft.com/v1.0",
        ...     provider=DefaultCredential(scope=GRAPH_DEFAULT_SCOPE),
        ... )
        >>> client.fetch("users/{user_id}", user_id="me")
    """

    def __init__(
        self,
        host_url: str,
        provider: TokenProvider | None = None,
        credentials: Callable[[Any], Any] | None = None,
        timeout: float = 60,
        connecttimeout: float = 30,
        max_tries: int = 5,
        response_handler: Callable[[Any], Any] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        if not isinstance(host_url, str) or not host_url.strip():
            raise ValueError("host_url must be a non-empty string")
        if credentials is not None and not callable(credentials):
            raise TypeError("credentials must be callable")
        if provider is not None and not isinstance(provider, TokenProvider):
            raise TypeError(
                "provider must implement get_token(), req_auth() and is_interactive()"
            )
        if max_tries < 1:
            raise ValueError("max_tries must be at least 1")

        self.host_url = host_url.rstrip("/")
        self.provider = provider
        self.timeout = timeout
        self.connecttimeout = connecttimeout
        self.max_tries = max_tries
        self.response_handler = response_handler or _identity
        self._session = session or requests.Session()

        if credentials is not None:
            self._credentials = credentials
        elif provider is not None:
            self._credentials = provider.req_auth
        else:
            self._credentials = None

    def __repr__(self) -> str:
        return f"ApiClient(host_url={self.host_url!r}, provider={self.provider!r})"

    def get_token(self) -> Token | None:
        """Return a token from the provider, or None without one."""
        if self.provider is None:
            logger.warning("No token provider configured for %s", self.host_url)
            return None
        return self.provider.get_token()

    def _url(self, path: str, path_params: Mapping[str, Any]) -> str:
        try:
            path = path.format_map(path_params)
        except KeyError as exc:
            raise ValueError(f"Missing path parameter {exc.args[0]!r} for {path!r}") from None
        path = path.lstrip("/")
        return f"{self.host_url}/{path}" if path else self.host_url

    def build_request(
        self,
        path: str = "",
        *,
        req_data: Mapping[str, Any] | str | None = None,
        req_method: str = "get",
        **path_params: Any,
    ) -> requests.PreparedRequest:
        """Build the authorised request for ``path`` without sending it.

        GET data becomes the query string. For other methods a mapping is
        sent as JSON with ``None`` values dropped and a string is sent as-is.
        """
        method = req_method.upper()
        request = requests.Request(method, self._url(path, path_params))

        if req_data is not None:
            if method == "GET":
                request.params = req_data
            else:
                body = req_data if isinstance(req_data, str) else json.dumps(drop_none(req_data))
                request.data = body.encode("utf-8")
                request.headers["Content-Type"] = "application/json"

        if self._credentials is not None:
            request = self._credentials(request)
        return self._session.prepare_request(request)

    def _send(self, request: requests.PreparedRequest) -> requests.Response:
        for attempt in range(1, self.max_tries + 1):
            logger.info(">>> %s %s", request.method, request.url)
            try:
                response = self._session.send(
                    request, timeout=(self.connecttimeout, self.timeout)
                )
            except (requests.ConnectionError, requests.Timeout) as exc:
                if attempt == self.max_tries:
                    raise ApiError(None, str(exc), request.url) from exc
                delay = backoff_default(attempt)
                logger.warning(
                    "Request failed (%s). Retrying in %.1f seconds (attempt %d/%d)",
                    exc,
                    delay,
                    attempt,
                    self.max_tries,
                )
                time.sleep(delay)
                continue

            logger.info(
                "<<< status = %s | time = %.3f secs. | size = %.1f Kb",
                response.status_code,
                response.elapsed.total_seconds(),
                len(response.content) / 1024,
            )
            if response.ok:
                return response

            if response.status_code in RETRY_STATUS_CODES and attempt < self.max_tries:
                delay = retry_after_seconds(response.headers.get("Retry-After"))
                if delay is None:
                    delay = backoff_default(attempt)
                logger.warning(
                    "HTTP %s error. Retrying in %.1f seconds (attempt %d/%d)",
                    response.status_code,
                    delay,
                    attempt,
                    self.max_tries,
                )
                time.sleep(delay)
                continue

            logger.error("<<< status = %s | %s", response.status_code, response.text)
            raise ApiError(response.status_code, response.text, response.url)

        raise RuntimeError("Unreachable")

    def parse_body(self, response: requests.Response, content_type: str | None = None) -> Any:
        """Decode a response body (JSON or text) and apply the response handler."""
        if not response.content:
            return self.response_handler(None)
        content_type = content_type or response.headers.get("Content-Type", "")
        media_type = content_type.split(";", 1)[0].strip().lower()
        if media_type == "application/json" or media_type.endswith("+json"):
            body = response.json()
        else:
            body = response.text
        return self.response_handler(body)

    def fetch(
        self,
        path: str = "",
        *,
        req_data: Mapping[str, Any] | str | None = None,
        req_method: str = "get",
        content: str = "body",
        content_type: str | None = None,
        **path_params: Any,
    ) -> Any:
        """Send a request and return the part selected by ``content``.

        Args:
            path: Path relative to ``host_url``; ``{name}`` placeholders are
                filled from ``path_params``.
            req_data: Query parameters (GET) or JSON body (other methods).
            req_method: HTTP method.
            content: ``"body"`` (parsed body), ``"headers"``, ``"response"``
                (the ``requests.Response``) or ``"request"`` (the prepared
                request, not sent).
            content_type: Overrides the response Content-Type for parsing.

        Raises:
            ApiError: If the request failed after all retries.
        """
        if content not in CONTENT_KINDS:
            raise ValueError(f"content must be one of {', '.join(CONTENT_KINDS)}")

        request = self.build_request(
            path, req_data=req_data, req_method=req_method, **path_params
        )
        if content == "request":
            return request

        response = self._send(request)
        if content == "headers":
            return response.headers
        if content == "response":
            return response
        return self.parse_body(response, content_type)
