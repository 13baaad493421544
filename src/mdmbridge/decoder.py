import math
from typing import Any, Iterator, Mapping

from mdmbridge.models import (
    DecodeFailure,
    FailureKind,
    RecognizedPerfRecord,
    Sample,
)
from mdmbridge.timeticks import MalformedTimestamp, ticks

_ITEM_STRING_FIELDS = ("Timestamp", "Host", "ObjectName", "InstanceName")


def coerce_value(raw: "Any") -> "int | None":
    """
    converts a counter value to an integer, truncating toward zero.
    Accepts ints, finite floats and numeric strings. Returns None
    for anything else, bools included.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        # int() and float() accept digit grouping, plain numbers only
        if "_" in text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            raw = float(text)
        except ValueError:
            return None
    if isinstance(raw, float) and math.isfinite(raw):
        return int(raw)
    return None


def _decode_item(index: "int", item: "Any") -> "Iterator[Sample | DecodeFailure]":
    if not isinstance(item, Mapping):
        yield DecodeFailure(
            FailureKind.MALFORMED_ITEM,
            f"data item is a {type(item).__name__}, not a mapping",
            {"item": index},
        )
        return

    missing = [f for f in _ITEM_STRING_FIELDS if not isinstance(item.get(f), str)]
    collections = item.get("Collections")
    if not isinstance(collections, list):
        missing.append("Collections")
    if missing:
        yield DecodeFailure(
            FailureKind.MALFORMED_ITEM,
            "data item is missing fields",
            {"item": index, "fields": missing},
        )
        return

    context = {
        "item": index,
        "host": item["Host"],
        "object_name": item["ObjectName"],
        "instance_name": item["InstanceName"],
    }

    # a bad timestamp invalidates every collection of this item
    try:
        timestamp_ticks = ticks(item["Timestamp"])
    except MalformedTimestamp as e:
        yield DecodeFailure(
            FailureKind.MALFORMED_TIMESTAMP,
            str(e),
            {**context, "timestamp": item["Timestamp"]},
        )
        return

    for collection in collections:
        counter_name = (
            collection.get("CounterName") if isinstance(collection, Mapping) else None
        )
        if not isinstance(counter_name, str):
            yield DecodeFailure(
                FailureKind.MALFORMED_ITEM,
                "collection has no CounterName",
                context,
            )
            continue

        raw_value = collection.get("Value")
        value = coerce_value(raw_value)
        if value is None:
            yield DecodeFailure(
                FailureKind.NON_NUMERIC_VALUE,
                f"counter value {raw_value!r} is not numeric",
                {**context, "counter_name": counter_name},
            )
            continue

        yield Sample(
            timestamp_ticks=timestamp_ticks,
            host=item["Host"],
            namespace=item["ObjectName"],
            instance=item["InstanceName"],
            counter_name=counter_name,
            value=value,
        )


def decode(record: "RecognizedPerfRecord") -> "Iterator[Sample | DecodeFailure]":
    """
    flattens a perf record into one Sample per Collection entry
    across all of its DataItems. Anything that can't be decoded is
    yielded as a DecodeFailure and decoding carries on with the
    next collection or item.
    """
    for index, item in enumerate(record.data_items):
        yield from _decode_item(index, item)
