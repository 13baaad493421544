from typing import Any, Mapping

from mdmbridge.models import RecognizedPerfRecord, Unrecognized

# the only record family forwarded today
PERF_DATA_TYPE = "LINUX_PERF_BLOB"


def classify(record: "Any") -> "RecognizedPerfRecord | Unrecognized":
    """
    decides whether a raw record is a perf blob that can be decoded.
    Never raises; anything unexpected is reported as Unrecognized.
    """
    if not isinstance(record, Mapping):
        return Unrecognized(f"record is a {type(record).__name__}, not a mapping")

    data_type = record.get("DataType")
    if data_type != PERF_DATA_TYPE:
        return Unrecognized(f"unsupported DataType {data_type!r}")

    data_items = record.get("DataItems")
    if data_items is None:
        return Unrecognized("missing DataItems")
    if not isinstance(data_items, list):
        return Unrecognized(f"DataItems is a {type(data_items).__name__}, not a list")

    return RecognizedPerfRecord(data_items=data_items)
