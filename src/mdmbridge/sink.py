import re
import threading
from typing import Any, Protocol

import structlog
from prometheus_client import REGISTRY, CollectorRegistry, Gauge

from mdmbridge.models import MetricIdentity

logger = structlog.get_logger()


class MetricSink(Protocol):
    """
    MetricSink is the protocol every metrics backend binding
    must satisfy.

    A sink hands out one opaque handle per metric identity and
    accepts time series points through that handle. Transport,
    authentication and timeouts are the sink's own business.
    """

    def start(self) -> "None": ...

    def shutdown(self) -> "None": ...

    def create_handle(self, account: "str", identity: "MetricIdentity") -> "Any": ...

    def emit(
        self,
        handle: "Any",
        timestamp_ticks: "int",
        value: "int",
        dim1_value: "str",
        dim2_value: "str",
    ) -> "bool": ...


class LoggingMetricSink:
    """
    LoggingMetricSink writes every point to the log instead of a
    backend. Useful as a dry run; it never rejects a point.
    """

    def __init__(self, verbose: "bool" = False) -> "None":
        # verbose replaces the backend library's own trace switch
        self._verbose = verbose
        self._points: "int" = 0
        self._lock: "threading.Lock" = threading.Lock()

    def start(self) -> "None":
        logger.info("log_sink_started", verbose=self._verbose)

    def shutdown(self) -> "None":
        logger.info("log_sink_shutdown", points=self._points)

    def create_handle(
        self, account: "str", identity: "MetricIdentity"
    ) -> "tuple[str, MetricIdentity]":
        return (account, identity)

    def emit(
        self,
        handle: "tuple[str, MetricIdentity]",
        timestamp_ticks: "int",
        value: "int",
        dim1_value: "str",
        dim2_value: "str",
    ) -> "bool":
        with self._lock:
            self._points += 1

        if self._verbose:
            account, identity = handle
            logger.info(
                "metric_point",
                account=account,
                namespace=identity.namespace,
                metric=identity.metric,
                dimensions={
                    identity.dim1_name: dim1_value,
                    identity.dim2_name: dim2_value,
                },
                value=value,
                timestamp_ticks=timestamp_ticks,
            )
        return True

    @property
    def points(self) -> "int":
        return self._points


_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def metric_name(prefix: "str", identity: "MetricIdentity") -> "str":
    """
    builds a Prometheus metric name out of the identity's namespace
    and metric, e.g. ("Memory", "% Used Memory") becomes
    "<prefix>_memory_used_memory".
    """
    parts = [prefix, identity.namespace, identity.metric]
    name = "_".join(_INVALID_NAME_CHARS.sub("_", p).strip("_") for p in parts if p)
    return re.sub(r"_+", "_", name).lower()


def label_name(dimension: "str") -> "str":
    """
    converts a dimension name to a label name, "InstanceName" -> "instance_name".
    """
    snake = _CAMEL_BOUNDARY.sub("_", dimension)
    return _INVALID_NAME_CHARS.sub("_", snake).strip("_").lower()


class PrometheusMetricSink:
    """
    PrometheusMetricSink exposes forwarded perf counters as
    Prometheus gauges, one gauge per metric identity, with the
    two dimensions as labels. Prometheus assigns scrape time to
    gauge samples, so the point's timestamp is not carried over.
    """

    def __init__(
        self,
        prefix: "str" = "mdm",
        registry: "CollectorRegistry" = REGISTRY,
    ) -> "None":
        self._prefix = prefix
        self._registry: "CollectorRegistry" = registry
        # gauges by metric name; distinct identities may sanitize
        # to the same name and must then share the gauge
        self._gauges: "dict[str, Gauge]" = {}
        self._lock: "threading.Lock" = threading.Lock()

    def start(self) -> "None":
        logger.info("prometheus_sink_started", prefix=self._prefix)

    def shutdown(self) -> "None":
        logger.info("prometheus_sink_shutdown", gauges=len(self._gauges))

    def create_handle(self, account: "str", identity: "MetricIdentity") -> "Gauge":
        name = metric_name(self._prefix, identity)
        with self._lock:
            gauge = self._gauges.get(name)
            if gauge is None:
                gauge = Gauge(
                    name,
                    f"{identity.namespace} {identity.metric} (account {account})",
                    [label_name(identity.dim1_name), label_name(identity.dim2_name)],
                    registry=self._registry,
                )
                self._gauges[name] = gauge
            return gauge

    def emit(
        self,
        handle: "Gauge",
        timestamp_ticks: "int",
        value: "int",
        dim1_value: "str",
        dim2_value: "str",
    ) -> "bool":
        try:
            handle.labels(dim1_value, dim2_value).set(value)
        except (ValueError, TypeError, OverflowError) as e:
            logger.warning("prometheus_sink_rejected", error=str(e))
            return False
        return True
