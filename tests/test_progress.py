import logging

import pytest

import glyphsim.pipeline.progress as progress_module
from glyphsim.errors import MalformedCheckpointLine
from glyphsim.orchestrator.models import CheckpointRecord, UnitCounters
from glyphsim.pipeline.progress import ProgressLog, parse_line


def _record(unit, computed=1):
    return CheckpointRecord(unit_id=unit, counters=UnitCounters(ssim_computed=computed))


def test_append_then_replay(tmp_path):
    path = tmp_path / "progress.jsonl"
    with ProgressLog(path, CheckpointRecord) as log:
        log.append(_record("a"))
        log.append(_record("b", computed=2))

    raw = path.read_text(encoding="utf-8").splitlines()
    assert '"unitId":"a"' in raw[0]

    log = ProgressLog(path, CheckpointRecord)
    assert log.replay() == {"a", "b"}
    records = list(log.iter_units(["b", "zzz", "a"]))
    assert [r.unit_id for r in records] == ["b", "a"]
    assert records[0].counters.ssim_computed == 2


def test_partial_tail_is_truncated(tmp_path, caplog):
    path = tmp_path / "progress.jsonl"
    with ProgressLog(path, CheckpointRecord) as log:
        log.append(_record("a"))
    intact = path.stat().st_size
    with path.open("ab") as fh:
        fh.write(b'{"unitId": "b", "pairSumm')

    log = ProgressLog(path, CheckpointRecord)
    with caplog.at_level(logging.WARNING, logger="glyphsim.pipeline.progress"):
        assert log.replay() == {"a"}
    assert "partial line" in caplog.text
    assert path.stat().st_size == intact

    log.append(_record("b"))
    log.close()
    assert ProgressLog(path, CheckpointRecord).replay() == {"a", "b"}


def test_malformed_middle_line_is_skipped(tmp_path, caplog):
    path = tmp_path / "progress.jsonl"
    lines = [_record("a").to_json(), "not json at all", '{"unitId": 5}', _record("c").to_json()]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    log = ProgressLog(path, CheckpointRecord)
    with caplog.at_level(logging.WARNING, logger="glyphsim.pipeline.progress"):
        done = log.replay()
    assert done == {"a", "c"}
    assert caplog.text.count("skipping malformed line") == 2


def test_later_line_wins(tmp_path):
    path = tmp_path / "progress.jsonl"
    with ProgressLog(path, CheckpointRecord) as log:
        log.append(_record("a", computed=1))
        log.append(_record("a", computed=7))
    log = ProgressLog(path, CheckpointRecord)
    log.replay()
    (record,) = log.iter_units(["a"])
    assert record.counters.ssim_computed == 7
    assert log.read_at(log.completed["a"]).counters.ssim_computed == 7


def test_missing_file_and_discard(tmp_path):
    path = tmp_path / "nested" / "progress.jsonl"
    log = ProgressLog(path, CheckpointRecord)
    assert not log.exists()
    assert log.replay() == set()
    log.append(_record("a"))
    assert log.exists()
    log.discard()
    assert not log.exists()
    assert log.completed == {}


def test_parse_line_errors():
    with pytest.raises(MalformedCheckpointLine) as info:
        parse_line(CheckpointRecord, 3, b"   \n")
    assert info.value.line_no == 3
    with pytest.raises(MalformedCheckpointLine):
        parse_line(CheckpointRecord, 4, b"{")


def test_partial_tail_longer_than_scan_chunk(tmp_path, monkeypatch):
    monkeypatch.setattr(progress_module, "_TAIL_CHUNK", 8)
    path = tmp_path / "progress.jsonl"
    with ProgressLog(path, CheckpointRecord) as log:
        log.append(_record("a"))
        log.append(_record("b"))
    intact = path.stat().st_size
    with path.open("ab") as fh:
        fh.write(b'{"unitId": "c", "pairSummaries": [' + b'{"source": "c"},' * 20)

    assert ProgressLog(path, CheckpointRecord).replay() == {"a", "b"}
    assert path.stat().st_size == intact


def test_log_without_any_complete_line_is_emptied(tmp_path, monkeypatch):
    monkeypatch.setattr(progress_module, "_TAIL_CHUNK", 8)
    path = tmp_path / "progress.jsonl"
    path.write_bytes(b'{"unitId": "a", "counters": {"ssimComp')

    assert ProgressLog(path, CheckpointRecord).replay() == set()
    assert path.stat().st_size == 0
