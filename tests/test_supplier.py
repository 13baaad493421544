import io
import json

import pytest

from mdmbridge.classifier import classify
from mdmbridge.models import Unrecognized
from mdmbridge.supplier import read_batches


def _stream(*lines: "str") -> "io.StringIO":
    return io.StringIO("\n".join(lines) + "\n")


class TestReadBatches:
    def test_groups_records_into_batches(self) -> "None":
        lines = [json.dumps({"n": i}) for i in range(5)]
        batches = list(read_batches(_stream(*lines), batch_size=2))
        assert [[r["n"] for r in b] for b in batches] == [[0, 1], [2, 3], [4]]

    def test_skips_blank_lines(self) -> "None":
        batches = list(read_batches(_stream("", '{"a": 1}', "   ", ""), batch_size=10))
        assert batches == [[{"a": 1}]]

    def test_empty_stream_yields_nothing(self) -> "None":
        assert list(read_batches(io.StringIO(""), batch_size=10)) == []

    def test_invalid_json_is_passed_through(self) -> "None":
        batches = list(read_batches(_stream('{"a": 1}', "{not json"), batch_size=10))
        assert batches == [[{"a": 1}, "{not json"]]
        # the raw line is rejected by classification
        assert isinstance(classify(batches[0][1]), Unrecognized)

    @pytest.mark.parametrize("size", [0, -1])
    def test_rejects_non_positive_batch_size(self, size: "int") -> "None":
        with pytest.raises(ValueError):
            list(read_batches(io.StringIO(""), batch_size=size))


class TestReadBatchesEncoding:
    def test_invalid_utf8_line_only_affects_that_line(self) -> "None":
        stream = io.BytesIO(b'{"a": 1}\n\xff\xfe garbage\n{"b": 2}\n')

        (batch,) = list(read_batches(stream, batch_size=10))

        assert batch[0] == {"a": 1}
        assert batch[2] == {"b": 2}
        assert isinstance(batch[1], str)
        assert isinstance(classify(batch[1]), Unrecognized)

    def test_text_wrapper_is_read_through_its_buffer(self) -> "None":
        raw = io.BytesIO(b'{"a": 1}\n\xff\xfe garbage\n{"b": 2}\n')
        stream = io.TextIOWrapper(raw, encoding="utf-8")

        batches = list(read_batches(stream, batch_size=2))

        assert [len(b) for b in batches] == [2, 1]
        assert batches[0][0] == {"a": 1}
        assert batches[1][0] == {"b": 2}

    def test_bytes_records_are_decoded(self) -> "None":
        stream = io.BytesIO('{"host": "höst"}\n'.encode("utf-8"))
        assert list(read_batches(stream, batch_size=10)) == [[{"host": "höst"}]]
