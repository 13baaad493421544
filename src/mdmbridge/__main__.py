import sys
from typing import IO

import structlog
from prometheus_client import start_http_server

from mdmbridge.cache import MetricKeyCache
from mdmbridge.cli import parse_args
from mdmbridge.config import Config
from mdmbridge.logging import setup_logging
from mdmbridge.metrics import ForwarderMetrics
from mdmbridge.processor import BatchProcessor
from mdmbridge.sink import LoggingMetricSink, MetricSink, PrometheusMetricSink
from mdmbridge.supplier import read_batches

logger = structlog.get_logger()


def _parse_listen_address(addr: "str") -> "tuple[str, int]":
    """
    splits a listen address such as ":9186", "127.0.0.1:9186" or
    "[::1]:9186" into host and port. No host means all interfaces.
    """
    host, _, port = addr.rpartition(":")
    if not port.isdigit():
        raise SystemExit(f"invalid listen address {addr!r}")

    return (host.strip("[]") or "0.0.0.0", int(port))


def build_sink(config: "Config") -> "MetricSink":
    if config.sink == "prometheus":
        return PrometheusMetricSink()
    return LoggingMetricSink(verbose=config.sink_verbose)


def run(
    config: "Config",
    stream: "IO[str] | IO[bytes]",
    metrics: "ForwarderMetrics | None" = None,
) -> "int":
    """
    forwards every batch read from the stream and returns the
    process exit code: 0 when all batches succeeded, 1 otherwise.
    """
    sink = build_sink(config)
    cache = MetricKeyCache(sink.create_handle)
    processor = BatchProcessor(config.mdm_account, cache, sink, metrics)

    failed_batches = 0
    sink.start()
    try:
        for number, batch in enumerate(read_batches(stream, config.batch_size)):
            verdict = processor.process(batch, tag=f"batch-{number}")
            if not verdict:
                failed_batches += 1
                logger.warning(
                    "batch_failed",
                    batch=number,
                    records=verdict.records,
                    failures={k.value: c for k, c in verdict.failures.items()},
                )
    finally:
        sink.shutdown()

    logger.info("input_exhausted", failed_batches=failed_batches, handles=len(cache))
    return 1 if failed_batches else 0


def main() -> "None":
    config = parse_args()
    setup_logging(config.log_level, config.mdm_account)

    if not config.mdm_account:
        raise SystemExit(
            "No MDM account configured. Set MDM_ACCOUNT or pass --mdm.account."
        )

    metrics = ForwarderMetrics()
    if config.listen_address:
        host, port = _parse_listen_address(config.listen_address)
        start_http_server(port, addr=host)
        logger.info("metrics_server_started", host=host, port=port)

    if config.input_path == "-":
        code = run(config, sys.stdin.buffer, metrics)
    else:
        with open(config.input_path, "rb") as stream:
            code = run(config, stream, metrics)

    logger.info("shutdown_complete")
    raise SystemExit(code)


if __name__ == "__main__":
    main()
