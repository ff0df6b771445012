"""Signed request execution with rate-limit and retry handling.

One call to :meth:`RequestExecutor.execute` issues a request until it reaches
a terminal outcome:

    2xx                         -> RawResponse (status synthesized for v1)
    429, remaining 0, window    -> sleep for the window, re-sign, retry
    400 / 404                   -> ClientError
    connection failure          -> retry up to max_retries, then TransientTransportError
    timeout                     -> RequestTimeoutError
    anything else               -> ServerError
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from ..config import ClientConfig, Credentials
from ..errors import (
    ClientError,
    LMApiError,
    ProtocolError,
    RequestTimeoutError,
    ServerError,
    TransientTransportError,
)
from .auth import Authenticator
from .types import ApiResult, RawResponse, Request
from .versions import resolve_version

logger = structlog.get_logger(__name__)

RATE_LIMIT_REMAINING_HEADER = "X-Rate-Limit-Remaining"
RATE_LIMIT_WINDOW_HEADER = "X-Rate-Limit-Window"
CLIENT_ERROR_STATUSES = frozenset({400, 404})


@dataclass
class RequestStats:
    """Running counters for one executor, exported by the metrics collector."""

    requests: int = 0
    retries: int = 0
    rate_limit_waits: int = 0
    rate_limit_wait_seconds: float = 0.0
    dry_runs: int = 0
    errors: dict[str, int] = field(default_factory=dict)

    def record_error(self, error: LMApiError) -> None:
        self.errors[error.kind.value] = self.errors.get(error.kind.value, 0) + 1


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def platform_status(version: int, body: Any) -> tuple[int | None, str | None]:
    """Extract the platform status code and message from a response body.

    Version 1 reports ``status``/``errmsg``; later versions report
    ``errorCode`` with ``errmsg`` or ``errorMessage``.
    """
    if not isinstance(body, dict):
        return None, None
    code_key = "status" if version == 1 else "errorCode"
    errmsg = body.get("errmsg", body.get("errorMessage"))
    return _as_int(body.get(code_key)), (str(errmsg) if errmsg is not None else None)


def rate_limit_window(response: httpx.Response) -> float | None:
    """Return the cooldown in seconds if the response is an exhausted rate limit."""
    if response.status_code != 429:  # noqa: PLR2004
        return None
    remaining = response.headers.get(RATE_LIMIT_REMAINING_HEADER)
    window = response.headers.get(RATE_LIMIT_WINDOW_HEADER)
    if remaining is None or window is None:
        return None
    try:
        if float(remaining) != 0:
            return None
        seconds = float(window)
    except ValueError:
        logger.warning(
            "Unparseable rate-limit headers",
            remaining=remaining,
            window=window,
        )
        return None
    if seconds <= 0:
        logger.warning("Rate limit without a usable window", window=window)
        return None
    return seconds


class RequestExecutor:
    """Issues signed requests for one tenant and classifies the outcome.

    Holds a thread-local httpx.Client created lazily on first use. The
    ``transport`` and ``sleep`` arguments exist so tests can script the
    server and the clock.
    """

    def __init__(
        self,
        config: ClientConfig,
        credentials: Credentials,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._config = config
        self._auth = Authenticator(credentials)
        self._transport = transport
        self._sleep = sleep
        self._local = threading.local()
        self.stats = RequestStats()

    @property
    def client(self) -> httpx.Client:
        """Get or create the thread-local httpx client."""
        if not hasattr(self._local, "client") or self._local.client.is_closed:
            self._local.client = httpx.Client(
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                },
                timeout=self._config.timeout,
                transport=self._transport,
            )
        return self._local.client

    def close(self) -> None:
        """Close the thread-local HTTP client if open."""
        if hasattr(self._local, "client") and not self._local.client.is_closed:
            self._local.client.close()

    def url(self, request: Request) -> str:
        """Absolute URL for a request, including its query string."""
        url = f"{self._config.base_url}{request.path}"
        if query := request.query_string():
            url = f"{url}?{query}"
        return url

    def _headers(self, request: Request, version: int) -> dict[str, str]:
        headers = {
            "Authorization": self._auth.token(request.method, request.path, request.body),
        }
        if version > 1:
            headers["X-version"] = str(version)
        return headers

    def execute(self, request: Request) -> ApiResult[RawResponse | None]:
        """Send a request and return the classified response.

        Args:
            request: The call to make. Its version, if unset, is resolved
                from the path once and used for every attempt.

        Returns:
            ApiResult holding the RawResponse, or None and the error.
        """
        version = resolve_version(request.path, request.version)
        url = self.url(request)

        if request.modifies and self._config.dry_run:
            return self._dry_run(request, url, version)

        result = self._send(request, url, version)
        if result.error is not None:
            self.stats.record_error(result.error)
            logger.warning(
                "API request failed",
                tenant=self._config.tenant,
                method=request.method,
                url=url,
                error_kind=result.error.kind.value,
                error=result.error.message,
            )
        return result

    def _dry_run(
        self,
        request: Request,
        url: str,
        version: int,
    ) -> ApiResult[RawResponse | None]:
        logger.info(
            "Dry run, request not sent",
            tenant=self._config.tenant,
            method=request.method,
            url=url,
            version=version,
            body=request.body,
        )
        self.stats.dry_runs += 1
        body: dict[str, Any] = {"status": 200} if version == 1 else {}
        error_code, errmsg = platform_status(version, body)
        return ApiResult(
            RawResponse(
                status_code=200,
                version=version,
                body=body,
                error_code=error_code,
                errmsg=errmsg,
            ),
        )

    def _send(
        self,
        request: Request,
        url: str,
        version: int,
    ) -> ApiResult[RawResponse | None]:
        retries = 0
        waited = 0.0
        log = logger.info if self._config.trace else logger.debug

        while True:
            # Re-signed on every attempt; the token embeds the current time.
            headers = self._headers(request, version)
            self.stats.requests += 1
            start_time = time.monotonic()
            try:
                response = self.client.request(
                    request.method,
                    url,
                    headers=headers,
                    content=request.body,
                )
            except httpx.TimeoutException:
                msg = f"No response within {self._config.timeout}s: {request.method} {url}"
                return ApiResult(None, RequestTimeoutError(msg))
            except httpx.TransportError as exc:
                retries += 1
                if retries > self._config.max_retries:
                    msg = (
                        f"Transport failure after {self._config.max_retries} retries: "
                        f"{request.method} {url}: {exc}"
                    )
                    return ApiResult(None, TransientTransportError(msg))
                self.stats.retries += 1
                logger.warning(
                    "Transport failure, retrying",
                    method=request.method,
                    url=url,
                    attempt=retries,
                    max_retries=self._config.max_retries,
                    error=str(exc),
                )
                continue

            log(
                "API request completed",
                method=request.method,
                url=url,
                version=version,
                status_code=response.status_code,
                duration_seconds=round(time.monotonic() - start_time, 3),
            )
            if self._config.trace >= 2:  # noqa: PLR2004
                logger.info("API response body", body=response.text)

            if response.is_success:
                return self._parse_success(request, response, version)

            window = rate_limit_window(response)
            if window is not None:
                limit = self._config.max_rate_limit_wait
                if limit is not None and waited + window > limit:
                    msg = f"Rate limit not released within {limit}s: {request.method} {url}"
                    return ApiResult(None, RequestTimeoutError(msg, status_code=429))
                logger.info(
                    "Rate limited, waiting for window",
                    tenant=self._config.tenant,
                    url=url,
                    window_seconds=window,
                )
                self.stats.rate_limit_waits += 1
                self.stats.rate_limit_wait_seconds += window
                self._sleep(window)
                waited += window
                continue

            if response.status_code in CLIENT_ERROR_STATUSES:
                return ApiResult(None, self._client_error(request, response, url))

            msg = f"{response.status_code} {response.reason_phrase}: {request.method} {url}"
            return ApiResult(None, ServerError(msg, status_code=response.status_code))

    def _parse_success(
        self,
        request: Request,
        response: httpx.Response,
        version: int,
    ) -> ApiResult[RawResponse | None]:
        text = response.text
        try:
            body = response.json() if text.strip() else {}
        except ValueError as exc:
            msg = f"Response is not valid JSON: {request.method} {request.path}: {exc}"
            return ApiResult(None, ProtocolError(msg, status_code=response.status_code))

        if version == 1 and isinstance(body, dict) and "status" not in body:
            body["status"] = response.status_code

        error_code, errmsg = platform_status(version, body)
        return ApiResult(
            RawResponse(
                status_code=response.status_code,
                version=version,
                body=body,
                error_code=error_code,
                errmsg=errmsg,
                text=text if request.raw else None,
            ),
        )

    @staticmethod
    def _client_error(request: Request, response: httpx.Response, url: str) -> ClientError:
        error_code = None
        errmsg = response.reason_phrase
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            error_code = _as_int(body.get("errorCode", body.get("status")))
            errmsg = str(body.get("errmsg", body.get("errorMessage", errmsg)))
        msg = f"{response.status_code} {errmsg}: {request.method} {url}"
        return ClientError(msg, status_code=response.status_code, error_code=error_code)
