"""Request and response types for the REST API client.

:class:`RawResponse` is a Pydantic model of what the API returned with
minimal processing; items inside ``body`` are left as plain dictionaries.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from ..errors import LMApiError

T = TypeVar("T")

MODIFYING_METHODS = frozenset({"PUT", "POST", "PATCH"})

# Query parameters in the order they are emitted.
QUERY_PARAMS = (
    "size",
    "sort",
    "filter",
    "fields",
    "offset",
    "format",
    "period",
    "datapoints",
    "start",
    "end",
)
MUTATION_PARAMS = ("_scope", "collectorId", "patchFields")

_QUERY_ESCAPES = str.maketrans({"&": "%26", "#": "%23"})


def ordered_params(
    values: dict[str, Any],
    order: tuple[str, ...] = QUERY_PARAMS,
) -> dict[str, Any]:
    """Arrange query parameters in the API's canonical order; others follow."""
    ordered = {key: values[key] for key in order if key in values}
    ordered.update((key, value) for key, value in values.items() if key not in ordered)
    return ordered


@dataclass
class Request:
    """A single API call before signing."""

    method: str
    path: str
    params: dict[str, Any] = field(default_factory=dict)
    body: str | None = None
    version: int | float | str | None = None
    raw: bool = False

    @property
    def modifies(self) -> bool:
        """Whether the request changes server-side state."""
        return self.method in MODIFYING_METHODS

    def query_string(self) -> str:
        """Render ``params`` in order, skipping unset and empty values.

        Values are otherwise sent as given, since filters arrive already
        encoded. Only ``&`` and ``#`` are escaped so a value cannot split
        the query or truncate the URL.
        """
        return "&".join(
            f"{key}={str(value).translate(_QUERY_ESCAPES)}"
            for key, value in self.params.items()
            if value is not None and value != ""
        )


class RawResponse(BaseModel):
    """Classified successful HTTP exchange.

    ``body`` is the parsed JSON document. ``error_code`` and ``errmsg`` hold
    the platform status reported inside the body (``status`` for version 1,
    ``errorCode`` for later versions). ``text`` is only set in raw mode.
    """

    status_code: int
    version: int
    body: Any = None
    error_code: int | None = None
    errmsg: str | None = None
    text: str | None = None


@dataclass(frozen=True)
class ApiResult(Generic[T]):
    """Outcome of a client operation: a value, or an error with a fallback value."""

    value: T
    error: LMApiError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, raising the error if the operation failed."""
        if self.error is not None:
            raise self.error
        return self.value
