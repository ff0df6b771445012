"""Client configuration, credential lookup and logging setup."""

import json
import logging
import os
import pathlib

import pydantic
import structlog

from .errors import ConfigError

CREDENTIALS_ENV_VAR = "LMAPI_CREDENTIALS"
DEFAULT_CREDENTIALS_PATH = "~/.lmapi"

DEFAULT_DOMAIN = "logicmonitor.com"
DEFAULT_API_ROOT = "santaba/rest"
DEFAULT_PAGE_SIZE = 50
DEFAULT_MAX_RETRIES = 3
DEFAULT_TIMEOUT = 30.0

logger = structlog.get_logger(__name__)


class ClientConfig(pydantic.BaseModel):
    """Configuration owned by a single client instance."""

    model_config = pydantic.ConfigDict(frozen=True)

    tenant: str = pydantic.Field(min_length=1, description="Tenant (company) name")
    domain: str = pydantic.Field(DEFAULT_DOMAIN, description="Platform domain")
    api_root: str = pydantic.Field(DEFAULT_API_ROOT, description="REST API root path")
    trace: int = pydantic.Field(0, ge=0, description="Request tracing verbosity")
    dry_run: bool = pydantic.Field(
        False,
        description="Log mutating requests instead of sending them",
    )
    page_size: int = pydantic.Field(DEFAULT_PAGE_SIZE, gt=0, description="Items per page")
    max_retries: int = pydantic.Field(
        DEFAULT_MAX_RETRIES,
        ge=0,
        description="Retries after connection-level failures",
    )
    timeout: float = pydantic.Field(DEFAULT_TIMEOUT, gt=0, description="Request timeout in seconds")
    max_rate_limit_wait: float | None = pydantic.Field(
        None,
        gt=0,
        description="Cumulative rate-limit sleep allowed per request, unbounded if unset",
    )

    @property
    def base_url(self) -> str:
        """REST API base URL for the tenant."""
        return f"https://{self.tenant}.{self.domain}/{self.api_root.strip('/')}"


class Credentials(pydantic.BaseModel):
    """API token pair for one tenant."""

    model_config = pydantic.ConfigDict(frozen=True)

    tenant: str
    access_id: str = pydantic.Field(min_length=1)
    access_key: str = pydantic.Field(min_length=1, repr=False)


class _TenantEntry(pydantic.BaseModel):
    access_id: str = pydantic.Field(min_length=1)
    access_key: str = pydantic.Field(min_length=1)


class CredentialStore(pydantic.BaseModel):
    """Contents of the per-user credential file."""

    companies: dict[str, _TenantEntry]


def credentials_path(path: str | pathlib.Path | None = None) -> pathlib.Path:
    """Resolve the credential file from an explicit path, the environment or the default."""
    resolved = path or os.environ.get(CREDENTIALS_ENV_VAR, DEFAULT_CREDENTIALS_PATH)
    return pathlib.Path(resolved).expanduser()


def load_credentials(
    tenant: str,
    path: str | pathlib.Path | None = None,
) -> Credentials:
    """Look up a tenant's access id and key in the credential store.

    The store is a JSON document of the form::

        {"companies": {"acme": {"access_id": "...", "access_key": "..."}}}

    Args:
        tenant: Tenant name, used as the key into ``companies``.
        path: Credential file; defaults to ``$LMAPI_CREDENTIALS`` or ``~/.lmapi``.

    Returns:
        Credentials for the tenant.

    Raises:
        ConfigError: If the file is missing, unreadable, malformed, or has
            no entry for the tenant.
    """
    store_path = credentials_path(path)
    try:
        with store_path.open("r") as f:
            data = json.load(f)
    except FileNotFoundError as exc:
        msg = f"Credential file not found: {store_path}"
        raise ConfigError(msg) from exc
    except (OSError, json.JSONDecodeError) as exc:
        msg = f"Unable to load API credentials from {store_path}: {exc}"
        raise ConfigError(msg) from exc

    try:
        store = CredentialStore.model_validate(data)
    except pydantic.ValidationError as exc:
        msg = f"Invalid companies section in {store_path}: {exc}"
        raise ConfigError(msg) from exc

    entry = store.companies.get(tenant)
    if entry is None:
        msg = f"Unable to find company '{tenant}' in the companies section of {store_path}"
        raise ConfigError(msg)

    logger.debug("Loaded credentials", tenant=tenant, path=str(store_path))
    return Credentials(tenant=tenant, access_id=entry.access_id, access_key=entry.access_key)


def configure_logging(log_level_name: str = "info", trace: int = 0) -> None:
    """Configure structlog for logfmt output.

    Request tracing (``ClientConfig.trace``) logs each attempt at info
    level, so a non-zero ``trace`` lowers the threshold to at least info
    and those lines are not filtered out.
    """
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    if trace:
        log_level = min(log_level, logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg"),
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
