"""LogicMonitor REST API client.

Composes credentials, version routing, signing, retries and paging for a
single tenant. Returns raw item dictionaries wrapped in ``ApiResult``;
interpreting those items is left to callers.
"""

import json
import pathlib
import time
from collections.abc import Callable
from typing import Any

import httpx
import structlog

from ..config import ClientConfig, Credentials, load_credentials
from .executor import RequestExecutor
from .paging import PagedFetcher, is_platform_success, platform_error
from .types import MUTATION_PARAMS, ApiResult, Request, ordered_params

logger = structlog.get_logger(__name__)


class LMApiClient:
    """HTTP client for one tenant of the LogicMonitor REST API.

    Can be used as a context manager for automatic cleanup.
    """

    def __init__(
        self,
        tenant: str | None = None,
        config: ClientConfig | None = None,
        credentials: Credentials | None = None,
        credentials_file: str | pathlib.Path | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the client.

        Args:
            tenant: Tenant name; required unless ``config`` is given.
            config: Full client configuration. Defaults are used if unset.
            credentials: Credentials to use instead of the credential store.
            credentials_file: Credential store path (see ``load_credentials``).
            transport: httpx transport override, mainly for tests.
            sleep: Function used to wait out rate-limit windows.

        Raises:
            ValueError: If neither ``tenant`` nor ``config`` is given, or
                the tenant, config and credentials disagree.
            ConfigError: If the tenant's credentials cannot be loaded.
        """
        if config is None:
            if not tenant:
                msg = "tenant cannot be empty"
                raise ValueError(msg)
            config = ClientConfig(tenant=tenant)
        elif tenant and tenant != config.tenant:
            msg = f"tenant {tenant!r} does not match config tenant {config.tenant!r}"
            raise ValueError(msg)

        if credentials is not None and credentials.tenant != config.tenant:
            msg = (
                f"credentials tenant {credentials.tenant!r} does not match "
                f"config tenant {config.tenant!r}"
            )
            raise ValueError(msg)

        self.config = config
        self._credentials = credentials or load_credentials(config.tenant, credentials_file)
        self.executor = RequestExecutor(config, self._credentials, transport=transport, sleep=sleep)
        self.fetcher = PagedFetcher(self.executor, config)
        logger.debug(
            "Created API client",
            tenant=config.tenant,
            base_url=config.base_url,
            dry_run=config.dry_run,
        )

    @property
    def tenant(self) -> str:
        return self.config.tenant

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager and cleanup resources."""
        self.close()

    def close(self):
        """Close the underlying HTTP client."""
        self.executor.close()

    def get_all(self, path: str, **kwargs: Any) -> ApiResult[list[Any]]:
        """Fetch a whole collection; see :meth:`PagedFetcher.get_all`."""
        return self.fetcher.get_all(path, **kwargs)

    def get_one(self, path: str, **kwargs: Any) -> ApiResult[Any | None]:
        """Fetch the first item of a collection; see :meth:`PagedFetcher.get_one`."""
        return self.fetcher.get_one(path, **kwargs)

    def get_data_nonpaged(self, path: str, **kwargs: Any) -> ApiResult[list[dict[str, Any]]]:
        """Fetch one window of data; see :meth:`PagedFetcher.get_data_nonpaged`."""
        return self.fetcher.get_data_nonpaged(path, **kwargs)

    def put(self, path: str, content: Any, **kwargs: Any) -> ApiResult[Any]:
        """Replace a resource."""
        return self._modify("PUT", path, content, **kwargs)

    def post(self, path: str, content: Any, **kwargs: Any) -> ApiResult[Any]:
        """Create a resource."""
        return self._modify("POST", path, content, **kwargs)

    def patch(self, path: str, content: Any, **kwargs: Any) -> ApiResult[Any]:
        """Update selected fields of a resource (see ``patchFields``)."""
        return self._modify("PATCH", path, content, **kwargs)

    def _modify(
        self,
        method: str,
        path: str,
        content: Any,
        version: int | str | None = None,
        **params: Any,
    ) -> ApiResult[Any]:
        """Send a mutating request and return the response body.

        Args:
            method: PUT, POST or PATCH.
            path: Resource path.
            content: JSON text, or a value to serialize as JSON.
            version: Explicit API version; resolved from the path if unset.
            **params: Query parameters (``_scope``, ``collectorId``,
                ``patchFields``).
        """
        unknown = set(params) - set(MUTATION_PARAMS)
        if unknown:
            msg = f"Unsupported query parameters for {method}: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        body = content if isinstance(content, str) else json.dumps(content)
        request = Request(
            method=method,
            path=path,
            params=ordered_params(params, MUTATION_PARAMS),
            body=body,
            version=version,
        )
        result = self.executor.execute(request)
        if result.error is not None:
            return ApiResult(None, result.error)

        response = result.value
        if not is_platform_success(response):
            error = platform_error(response, f"{self.tenant}: {method} {path}")
            return ApiResult(response.body, error)
        return ApiResult(response.body)
