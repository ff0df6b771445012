"""Tests for ClientCollector wired to real clients.

Client statistics are produced by driving requests through a scripted
server, then read back through the public collect() method.
"""

import httpx
import pytest
from prometheus_client.core import CollectorRegistry

from lmapi import collector
from lmapi.rest import LMApiClient

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client_collector(api_client: LMApiClient) -> collector.ClientCollector:
    return collector.ClientCollector([api_client])


def _collect(c: collector.ClientCollector) -> dict:
    return {m.name: m for m in c.collect()}


def _value(metrics: dict, name: str, **labels: str) -> float:
    for sample in metrics[name].samples:
        if sample.name.endswith("_total") and all(
            sample.labels.get(k) == v for k, v in labels.items()
        ):
            return sample.value
    msg = f"no sample for {name} {labels}"
    raise AssertionError(msg)


# ---------------------------------------------------------------------------
# Metric families
# ---------------------------------------------------------------------------


def test_collect_yields_all_families(client_collector: collector.ClientCollector):
    metrics = _collect(client_collector)
    assert set(metrics) == {
        "lmapi_requests",
        "lmapi_retries",
        "lmapi_rate_limit_waits",
        "lmapi_rate_limit_wait_seconds",
        "lmapi_dry_runs",
        "lmapi_errors",
    }


def test_collect_starts_at_zero(client_collector: collector.ClientCollector):
    metrics = _collect(client_collector)
    assert _value(metrics, "lmapi_requests", tenant="acme") == 0
    assert _value(metrics, "lmapi_errors", tenant="acme", kind="server") == 0


def test_collect_custom_prefix(api_client: LMApiClient):
    metrics = _collect(collector.ClientCollector([api_client], metric_prefix="backup"))
    assert "backup_requests" in metrics


# ---------------------------------------------------------------------------
# Counters follow client activity
# ---------------------------------------------------------------------------


def test_collect_counts_requests_and_rate_limits(
    api_client: LMApiClient,
    client_collector: collector.ClientCollector,
    server,
):
    server.queue(
        httpx.Response(429, headers={"X-Rate-Limit-Remaining": "0", "X-Rate-Limit-Window": "2"}),
        httpx.Response(200, json={"status": 200, "data": {"items": []}}),
    )
    api_client.get_all("/device/devices")

    metrics = _collect(client_collector)
    assert _value(metrics, "lmapi_requests", tenant="acme") == 2
    assert _value(metrics, "lmapi_rate_limit_waits", tenant="acme") == 1
    assert _value(metrics, "lmapi_rate_limit_wait_seconds", tenant="acme") == 2.0


def test_collect_counts_errors_by_kind(
    api_client: LMApiClient,
    client_collector: collector.ClientCollector,
    server,
):
    server.queue(httpx.Response(404), httpx.ConnectError("refused"), httpx.ReadTimeout("slow"))
    api_client.get_all("/device/devices/1")
    api_client.get_all("/device/devices/1")

    metrics = _collect(client_collector)
    assert _value(metrics, "lmapi_errors", tenant="acme", kind="client") == 1
    assert _value(metrics, "lmapi_errors", tenant="acme", kind="timeout") == 1
    assert _value(metrics, "lmapi_retries", tenant="acme") == 1


def test_collector_registers_with_custom_registry(client_collector: collector.ClientCollector):
    registry = CollectorRegistry()
    registry.register(client_collector)
    assert registry.get_sample_value("lmapi_requests_total", {"tenant": "acme"}) == 0
