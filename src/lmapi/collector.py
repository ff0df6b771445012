"""Prometheus collector for API client request statistics.

Exposes the counters kept by each client's executor so that scripts built
on the client can publish how many requests, retries and rate-limit waits
they incurred.
"""

from collections.abc import Iterator

import structlog
from prometheus_client.core import CounterMetricFamily
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from .errors import ErrorKind
from .rest import LMApiClient

logger = structlog.get_logger(__name__)


class ClientCollector(Collector):
    """Yields request counters for a set of clients, labelled by tenant.

    Reads the live ``RequestStats`` of each client at scrape time; nothing
    is registered globally.
    """

    def __init__(self, clients: list[LMApiClient], metric_prefix: str = "lmapi"):
        """Initialize the collector.

        Args:
            clients: Clients whose statistics are exported.
            metric_prefix: Metric name prefix.
        """
        self._clients = clients
        self._prefix = metric_prefix

    def _counter(self, name: str, documentation: str, labels: list[str]) -> CounterMetricFamily:
        return CounterMetricFamily(f"{self._prefix}_{name}", documentation, labels=labels)

    def collect(self) -> Iterator[Metric]:
        """Collect metrics for a Prometheus scrape.

        Yields:
            Counter families for requests, retries, rate-limit waits, dry
            runs and errors by kind.
        """
        requests = self._counter("requests", "HTTP requests sent", ["tenant"])
        retries = self._counter("retries", "Retries after transport failures", ["tenant"])
        waits = self._counter("rate_limit_waits", "Rate-limit windows waited out", ["tenant"])
        wait_seconds = self._counter(
            "rate_limit_wait_seconds",
            "Seconds spent waiting for rate-limit windows",
            ["tenant"],
        )
        dry_runs = self._counter("dry_runs", "Mutating requests skipped by dry run", ["tenant"])
        errors = self._counter("errors", "Failed requests by error kind", ["tenant", "kind"])

        for client in self._clients:
            stats = client.executor.stats
            tenant = client.tenant
            requests.add_metric([tenant], stats.requests)
            retries.add_metric([tenant], stats.retries)
            waits.add_metric([tenant], stats.rate_limit_waits)
            wait_seconds.add_metric([tenant], stats.rate_limit_wait_seconds)
            dry_runs.add_metric([tenant], stats.dry_runs)
            for kind in ErrorKind:
                if kind is ErrorKind.CONFIG:
                    continue
                errors.add_metric([tenant, kind.value], stats.errors.get(kind.value, 0))

        logger.debug("Collected client metrics", clients=len(self._clients))
        yield requests
        yield retries
        yield waits
        yield wait_seconds
        yield dry_runs
        yield errors
