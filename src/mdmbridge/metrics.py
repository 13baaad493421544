from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from mdmbridge.models import BatchVerdict, FailureKind


class ForwarderMetrics:
    """
    tracks the forwarder's own health as Prometheus metrics:
     - batches_total: processed batches, labeled by outcome
     (success/failure).
     - samples_emitted_total: samples accepted by the sink.
     - failures_total: failures labeled by kind.
     - batch_duration_seconds: wall time spent per batch.
     - metric_handles: handles held by the metric key cache.
    """

    def __init__(self, registry: "CollectorRegistry" = REGISTRY) -> "None":
        self._batches: "Counter" = Counter(
            "mdmbridge_batches_total",
            "Total number of processed batches by outcome",
            ["outcome"],
            registry=registry,
        )
        self._samples_emitted: "Counter" = Counter(
            "mdmbridge_samples_emitted_total",
            "Total number of samples accepted by the metric sink",
            registry=registry,
        )
        self._failures: "Counter" = Counter(
            "mdmbridge_failures_total",
            "Total number of record, sample and emission failures by kind",
            ["kind"],
            registry=registry,
        )
        self._batch_duration: "Histogram" = Histogram(
            "mdmbridge_batch_duration_seconds",
            "Duration of batch processing",
            registry=registry,
        )
        self._handles: "Gauge" = Gauge(
            "mdmbridge_metric_handles",
            "Number of metric handles held by the key cache",
            registry=registry,
        )

        # export zero for every kind so rates work from the first scrape
        for kind in FailureKind:
            self._failures.labels(kind=kind.value)

    def observe_batch(
        self, verdict: "BatchVerdict", duration_seconds: "float"
    ) -> "None":
        outcome = "success" if verdict.success else "failure"
        self._batches.labels(outcome=outcome).inc()
        self._batch_duration.observe(duration_seconds)
        if verdict.samples_emitted:
            self._samples_emitted.inc(verdict.samples_emitted)
        for kind, count in verdict.failures.items():
            self._failures.labels(kind=kind.value).inc(count)

    def set_handle_count(self, count: "int") -> "None":
        self._handles.set(count)
