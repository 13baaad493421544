import json
from typing import IO, Any, Iterator

import structlog

logger = structlog.get_logger()


def read_batches(
    stream: "IO[str] | IO[bytes]", batch_size: "int"
) -> "Iterator[list[Any]]":
    """
    reads newline delimited JSON records from the stream and yields
    them in batches of at most batch_size records. Blank lines are
    skipped. A line that isn't valid JSON or valid UTF-8 is passed
    along as a string so the batch it lands in gets rejected
    downstream.

    Text streams backed by a binary buffer (sys.stdin, open() in text
    mode) are read through that buffer so a bad byte only affects the
    line it is on.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    source = getattr(stream, "buffer", stream)

    batch: "list[Any]" = []
    for lineno, line in enumerate(source, start=1):
        line = line.strip()
        if not line:
            continue

        # JSONDecodeError and UnicodeDecodeError are both ValueErrors
        try:
            record: "Any" = json.loads(line)
        except ValueError as e:
            logger.warning("invalid_json_record", line=lineno, error=str(e))
            if isinstance(line, bytes):
                line = line.decode("utf-8", errors="replace")
            record = line

        batch.append(record)
        if len(batch) >= batch_size:
            yield batch
            batch = []

    if batch:
        yield batch
