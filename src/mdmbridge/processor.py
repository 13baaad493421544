import time
from typing import Any, Iterable

import structlog

from mdmbridge.cache import MetricKeyCache
from mdmbridge.classifier import classify
from mdmbridge.decoder import decode
from mdmbridge.metrics import ForwarderMetrics
from mdmbridge.models import (
    BatchVerdict,
    DecodeFailure,
    FailureKind,
    RecognizedPerfRecord,
    Sample,
    Unrecognized,
)
from mdmbridge.sink import MetricSink

logger = structlog.get_logger()


class BatchProcessor:
    """
    BatchProcessor turns a batch of raw records into metric
    emissions and reports a single verdict for the batch.

    Every record and every sample is attempted even after a
    failure; any failure marks the whole batch as failed so the
    caller can retry it. Nothing raised while processing a batch
    escapes process().
    """

    def __init__(
        self,
        account: "str",
        cache: "MetricKeyCache",
        sink: "MetricSink",
        metrics: "ForwarderMetrics | None" = None,
    ) -> "None":
        self._account = account
        self._cache = cache
        self._sink = sink
        self._metrics = metrics

    def process(self, batch: "Iterable[Any]", tag: "str" = "") -> "BatchVerdict":
        """
        processes the records of a batch in arrival order.
        """
        start = time.monotonic()
        verdict = BatchVerdict()

        try:
            for record in batch:
                verdict.records += 1
                result = classify(record)

                if isinstance(result, Unrecognized):
                    logger.error("unsupported_record", tag=tag, reason=result.reason)
                    verdict.record_failure(FailureKind.UNRECOGNIZED_RECORD)
                    continue

                self._handle_perf_record(result, verdict, tag)

        except Exception:
            logger.exception("unexpected_batch_error", tag=tag, records=verdict.records)
            verdict.record_failure(FailureKind.UNEXPECTED_FAULT)

        if self._metrics is not None:
            self._metrics.observe_batch(verdict, time.monotonic() - start)
            self._metrics.set_handle_count(len(self._cache))

        logger.debug(
            "batch_processed",
            tag=tag,
            success=verdict.success,
            records=verdict.records,
            samples_emitted=verdict.samples_emitted,
            failures=verdict.failure_count,
        )
        return verdict

    def _handle_perf_record(
        self,
        record: "RecognizedPerfRecord",
        verdict: "BatchVerdict",
        tag: "str",
    ) -> "None":
        for decoded in decode(record):
            if isinstance(decoded, DecodeFailure):
                logger.error(
                    "record_decode_failed",
                    tag=tag,
                    kind=decoded.kind.value,
                    reason=decoded.reason,
                    **decoded.context,
                )
                verdict.record_failure(decoded.kind)
                continue

            if self._emit(decoded):
                verdict.samples_emitted += 1
            else:
                verdict.record_failure(FailureKind.EMISSION_FAILURE)

    def _emit(self, sample: "Sample") -> "bool":
        identity = sample.identity
        trace = {
            "namespace": identity.namespace,
            "metric": identity.metric,
            "d1": identity.dim1_name,
            "d1val": sample.host,
            "d2": identity.dim2_name,
            "d2val": sample.instance,
            "value": sample.value,
        }
        logger.debug("sending_metric", **trace)

        handle = self._cache.resolve(self._account, identity)
        ok = bool(
            self._sink.emit(
                handle,
                sample.timestamp_ticks,
                sample.value,
                sample.host,
                sample.instance,
            )
        )
        if not ok:
            logger.error("emission_failed", account=self._account, **trace)
        return ok
