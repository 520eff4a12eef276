import gzip
import json

import numpy as np
import pytest

from glyphsim.artifacts.gz_json import GzJsonWriter, read_json_gz


def test_streams_fields_and_arrays(tmp_path):
    path = tmp_path / "out.json.gz"
    with GzJsonWriter(path, flush_every=2) as writer:
        writer.field("meta", {"count": np.int64(3), "name": "ünï"})
        writer.begin_array("pairs")
        writer.item({"a": 1})
        writer.item('{"b": 2}')
        writer.item({"c": np.float32(0.5)})
        writer.end_array()
        writer.begin_array("empty")
        writer.end_array()
        assert writer.tmp_path.exists()
        assert not path.exists()

    assert not writer.tmp_path.exists()
    data = read_json_gz(path)
    assert list(data) == ["meta", "pairs", "empty"]
    assert data["meta"] == {"count": 3, "name": "ünï"}
    assert data["pairs"] == [{"a": 1}, {"b": 2}, {"c": 0.5}]
    assert data["empty"] == []
    with gzip.open(path, "rt", encoding="utf-8") as fh:
        assert json.load(fh) == data


def test_failure_leaves_no_output(tmp_path):
    path = tmp_path / "out.json.gz"
    with pytest.raises(RuntimeError):
        with GzJsonWriter(path) as writer:
            writer.begin_array("pairs")
            writer.item({"a": 1})
            raise RuntimeError("boom")
    assert not path.exists()
    assert not writer.tmp_path.exists()


def test_close_finishes_an_open_array(tmp_path):
    path = tmp_path / "out.json.gz"
    writer = GzJsonWriter(path)
    writer.begin_array("pairs")
    writer.item([1, 2])
    writer.close()
    assert read_json_gz(path) == {"pairs": [[1, 2]]}


def test_misuse_is_rejected(tmp_path):
    writer = GzJsonWriter(tmp_path / "out.json.gz")
    with pytest.raises(ValueError):
        writer.item(1)
    writer.begin_array("pairs")
    with pytest.raises(ValueError):
        writer.field("meta", {})
    writer.abort()
