from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# dimension names attached to every forwarded perf counter
REGION_DIMENSION = "Region"
INSTANCE_DIMENSION = "InstanceName"

_KEY_SEPARATOR = "|"


def _escape(component: "str") -> "str":
    return component.replace("\\", "\\\\").replace(_KEY_SEPARATOR, "\\|")


class FailureKind(str, Enum):
    UNRECOGNIZED_RECORD = "unrecognized_record"
    MALFORMED_ITEM = "malformed_item"
    MALFORMED_TIMESTAMP = "malformed_timestamp"
    NON_NUMERIC_VALUE = "non_numeric_value"
    EMISSION_FAILURE = "emission_failure"
    UNEXPECTED_FAULT = "unexpected_fault"


@dataclass(frozen=True, slots=True)
class MetricIdentity:
    """
    MetricIdentity names a reusable backend metric. It
    deliberately leaves out dimension values, which change
    per sample.
    """

    namespace: "str"
    metric: "str"
    dim1_name: "str"
    dim2_name: "str"

    @property
    def key(self) -> "str":
        """
        serializes the identity into a single string. Separators
        inside a component are escaped, so two different
        identities never share a key.
        """
        return _KEY_SEPARATOR.join(
            _escape(c)
            for c in (self.namespace, self.metric, self.dim1_name, self.dim2_name)
        )


@dataclass(frozen=True, slots=True)
class Sample:
    """
    Sample is one decoded counter value, ready to be emitted.
    """

    timestamp_ticks: "int"
    host: "str"
    # ObjectName of the data item, used as the metric namespace
    namespace: "str"
    instance: "str"
    counter_name: "str"
    value: "int"

    @property
    def identity(self) -> "MetricIdentity":
        return MetricIdentity(
            namespace=self.namespace,
            metric=self.counter_name,
            dim1_name=REGION_DIMENSION,
            dim2_name=INSTANCE_DIMENSION,
        )


@dataclass(frozen=True, slots=True)
class DecodeFailure:
    """
    DecodeFailure takes the place of a sample (or of a whole
    data item) that could not be decoded.
    """

    kind: "FailureKind"
    reason: "str"
    context: "dict[str, Any]" = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RecognizedPerfRecord:
    data_items: "list[Any]"


@dataclass(frozen=True, slots=True)
class Unrecognized:
    reason: "str"


@dataclass(slots=True)
class BatchVerdict:
    """
    BatchVerdict summarizes one processed batch. A single
    failure of any kind fails the whole batch; the caller is
    expected to retry the batch as a unit.
    """

    records: "int" = 0
    samples_emitted: "int" = 0
    failures: "dict[FailureKind, int]" = field(default_factory=dict)

    def record_failure(self, kind: "FailureKind") -> "None":
        self.failures[kind] = self.failures.get(kind, 0) + 1

    @property
    def failure_count(self) -> "int":
        return sum(self.failures.values())

    @property
    def success(self) -> "bool":
        return not self.failures

    def __bool__(self) -> "bool":
        return self.success
