"""Collection paging and time-series windows on top of the executor."""

import time
from dataclasses import dataclass
from typing import Any

import structlog

from ..config import ClientConfig
from ..errors import PlatformError
from .executor import RequestExecutor
from .filters import FilterSpec, encode_filter
from .types import ApiResult, RawResponse, Request, ordered_params

logger = structlog.get_logger(__name__)

Item = dict[str, Any]

SUCCESS_STATUS = 200
# Platform codes that mean "no data for this window" rather than failure.
NO_DATA_CODES = frozenset(
    {
        1007,  # datapoints do not belong to the datasource
        1069,  # device has no such DeviceDataSource
    },
)


def _as_items(value: Any) -> list[Item]:
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    if isinstance(value, dict):
        return [value]
    return []


def extract_items(version: int, body: Any) -> list[Item]:
    """Normalize a response body into an ordered list of items.

    Version 1 wraps results as ``{"data": {"items": [...]}}`` or a single
    object in ``data``. Later versions return ``{"items": [...]}`` for
    collections and the bare resource otherwise.
    """
    if not isinstance(body, dict):
        return []
    if version == 1:
        data = body.get("data")
        if isinstance(data, dict) and "items" in data:
            return _as_items(data["items"])
        return _as_items(data)
    if "items" in body:
        return _as_items(body["items"])
    # An empty document carries no resource.
    return [body] if body else []


def is_platform_success(response: RawResponse) -> bool:
    """Whether the API reported success inside the response body.

    Version 1 requires ``status == 200``. Later versions succeed when no
    ``errorCode`` is present; some endpoints send a code alongside an "OK"
    message for successful calls.
    """
    if response.version == 1:
        return response.error_code == SUCCESS_STATUS
    if response.error_code in (None, 0, SUCCESS_STATUS):
        return True
    return (response.errmsg or "").strip().upper() == "OK"


def platform_error(response: RawResponse, context: str) -> PlatformError:
    msg = f"{context}: {response.error_code} {response.errmsg or ''}".rstrip()
    return PlatformError(
        msg,
        status_code=response.status_code,
        error_code=response.error_code,
    )


@dataclass
class PageCursor:
    """Position within a paged fetch."""

    page_size: int
    remaining: int | None = None
    offset: int = 0

    @property
    def fetch_size(self) -> int:
        if self.remaining is not None and self.remaining < self.page_size:
            return self.remaining
        return self.page_size

    def advance(self, fetched: int) -> bool:
        """Move past a page of ``fetched`` requested items; False when done."""
        if self.remaining is not None:
            self.remaining -= fetched
            if self.remaining <= 0:
                return False
        self.offset += fetched
        return True


class PagedFetcher:
    """Fetches whole collections and single data windows."""

    def __init__(self, executor: RequestExecutor, config: ClientConfig):
        self._executor = executor
        self._config = config

    def get_all(
        self,
        path: str,
        filter: FilterSpec | None = None,  # noqa: A002
        fields: str | None = None,
        sort: str | None = None,
        size: int | None = None,
        version: int | str | None = None,
        raw: bool = False,
        **params: Any,
    ) -> ApiResult[list[Any]]:
        """Fetch every item of a collection, page by page.

        Args:
            path: Collection path (e.g. "/device/devices").
            filter: Filter expression, encoded into the ``filter`` parameter.
            fields: Comma-separated list of fields to return.
            sort: Sort expression (e.g. "-id").
            size: Maximum number of items to return; all items if unset.
            version: Explicit API version; resolved from the path if unset.
            raw: Collect each page's raw JSON text instead of items.
            **params: Additional query parameters (format, period, ...).

        Returns:
            ApiResult with the items in server order. On any error the
            pages already fetched are discarded and the value is empty.
        """
        if size is not None and size <= 0:
            msg = "size must be positive"
            raise ValueError(msg)

        cursor = PageCursor(page_size=self._config.page_size, remaining=size)
        encoded_filter = encode_filter(filter) if filter is not None else None
        items: list[Any] = []

        while True:
            fetch_size = cursor.fetch_size
            request = Request(
                method="GET",
                path=path,
                params=ordered_params(
                    {
                        **params,
                        "size": fetch_size,
                        "sort": sort,
                        "filter": encoded_filter,
                        "fields": fields,
                        "offset": cursor.offset,
                    },
                ),
                version=version,
                raw=raw,
            )
            result = self._executor.execute(request)
            if result.error is not None:
                return ApiResult([], result.error)

            response = result.value
            if not is_platform_success(response):
                error = platform_error(response, f"{self._config.tenant}: get_all({path})")
                logger.error(
                    "Collection fetch aborted",
                    path=path,
                    offset=cursor.offset,
                    discarded_items=len(items),
                    error_code=response.error_code,
                    errmsg=response.errmsg,
                )
                return ApiResult([], error)

            page = extract_items(response.version, response.body)
            if raw:
                items.append(response.text)
            else:
                items.extend(page)

            # A short page marks the end of the collection.
            if len(page) < cursor.page_size or not cursor.advance(fetch_size):
                break

        logger.debug("Fetched collection", path=path, items=len(items))
        return ApiResult(items)

    def get_one(self, path: str, **kwargs: Any) -> ApiResult[Any | None]:
        """Fetch the first item of a collection, or None if it is empty."""
        kwargs["size"] = 1
        result = self.get_all(path, **kwargs)
        return ApiResult(result.value[0] if result.value else None, result.error)

    def get_data_nonpaged(
        self,
        path: str,
        period: float | None = None,
        start: float | None = None,
        end: float | None = None,
        version: int | str | None = None,
        **params: Any,
    ) -> ApiResult[list[Item]]:
        """Fetch a single window of time-series data.

        The window is either ``period`` hours ending now, or ``start`` to
        ``end`` in epoch seconds. Bounds are sent in epoch milliseconds.

        Raises:
            ValueError: If the window is incomplete or starts after it ends.
        """
        if period is not None:
            end = int(time.time())
            start = end - int(3600 * period)
        if start is None:
            msg = f"{self._config.tenant}: get_data: start time not defined"
            raise ValueError(msg)
        if end is None:
            msg = f"{self._config.tenant}: get_data: end time not defined"
            raise ValueError(msg)
        if start > end:
            msg = f"{self._config.tenant}: get_data: start time is after end time"
            raise ValueError(msg)

        request = Request(
            method="GET",
            path=path,
            params=ordered_params(
                {**params, "start": int(start * 1000), "end": int(end * 1000)},
            ),
            version=version,
        )
        result = self._executor.execute(request)
        if result.error is not None:
            return ApiResult([], result.error)

        response = result.value
        if is_platform_success(response):
            return ApiResult(extract_items(response.version, response.body))
        if response.error_code in NO_DATA_CODES:
            logger.debug(
                "No data for window",
                path=path,
                error_code=response.error_code,
                errmsg=response.errmsg,
            )
            return ApiResult([])
        return ApiResult([], platform_error(response, f"{self._config.tenant}: get_data({path})"))
