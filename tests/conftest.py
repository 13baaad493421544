import pytest
from prometheus_client import CollectorRegistry

from mdmbridge.sink import PrometheusMetricSink


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    isolated registry so self metrics and forwarded gauges
    don't leak between tests.
    """
    return CollectorRegistry()


@pytest.fixture()
def prometheus_sink(registry: "CollectorRegistry") -> "PrometheusMetricSink":
    return PrometheusMetricSink(registry=registry)
