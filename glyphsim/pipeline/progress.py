# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Append-only JSON-lines progress log.

Each line is one completed unit. A line is durable once :meth:`append`
returns (written, flushed and fsynced). On replay, a trailing fragment left
by a crash mid-write is cut off and any other line that fails validation is
skipped with a warning, so its unit is recomputed.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Dict, Generic, Iterable, Iterator, Set, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from ..errors import MalformedCheckpointLine, OutputStreamError

logger = logging.getLogger(__name__)

__all__ = ["ProgressLog", "parse_line"]

M = TypeVar("M", bound=BaseModel)

# read size when scanning backwards for the last complete line
_TAIL_CHUNK = 64 * 1024


def parse_line(model: Type[M], line_no: int, raw: bytes) -> M:
    text = raw.strip()
    if not text:
        raise MalformedCheckpointLine(line_no, "empty line")
    try:
        return model.model_validate_json(text)
    except ValidationError as exc:
        raise MalformedCheckpointLine(line_no, exc.errors()[0].get("msg", "invalid record")) from exc


class ProgressLog(Generic[M]):
    def __init__(
        self,
        path: Union[str, Path],
        model: Type[M],
        key: Callable[[M], str] = lambda record: record.unit_id,  # type: ignore[attr-defined]
    ) -> None:
        self.path = Path(path)
        self.model = model
        self.key = key
        self._offsets: Dict[str, int] = {}
        self._fh = None

    @property
    def completed(self) -> Dict[str, int]:
        """Unit id -> byte offset of its last valid line."""

        return dict(self._offsets)

    def exists(self) -> bool:
        return self.path.exists()

    def discard(self) -> None:
        self.close()
        if self.path.exists():
            self.path.unlink()
        self._offsets.clear()

    def _truncate_partial_tail(self) -> None:
        size = self.path.stat().st_size
        if size == 0:
            return
        with self.path.open("rb+") as fh:
            fh.seek(size - 1)
            if fh.read(1) == b"\n":
                return
            keep = 0
            end = size
            while end > 0:
                start = max(0, end - _TAIL_CHUNK)
                fh.seek(start)
                pos = fh.read(end - start).rfind(b"\n")
                if pos >= 0:
                    keep = start + pos + 1
                    break
                end = start
            logger.warning(
                "progress log %s ends with a partial line (%d bytes); truncating",
                self.path,
                size - keep,
            )
            fh.truncate(keep)

    def replay(self) -> Set[str]:
        """Index every valid line and return the completed unit ids.

        Records are not kept in memory; later lines for the same unit win.
        """

        self._offsets.clear()
        if not self.path.exists():
            return set()
        self._truncate_partial_tail()
        offset = 0
        with self.path.open("rb") as fh:
            for line_no, raw in enumerate(fh, start=1):
                start, offset = offset, offset + len(raw)
                try:
                    record = parse_line(self.model, line_no, raw)
                except MalformedCheckpointLine as exc:
                    logger.warning("skipping malformed line in %s: %s", self.path, exc)
                    continue
                self._offsets[self.key(record)] = start
        return set(self._offsets)

    def read_at(self, offset: int) -> M:
        with self.path.open("rb") as fh:
            fh.seek(offset)
            return parse_line(self.model, -1, fh.readline())

    def iter_units(self, order: Iterable[str]) -> Iterator[M]:
        """Yield the stored record of each unit in ``order`` that has one."""

        with self.path.open("rb") as fh:
            for unit in order:
                offset = self._offsets.get(unit)
                if offset is None:
                    continue
                fh.seek(offset)
                yield parse_line(self.model, -1, fh.readline())

    def append(self, record: M) -> None:
        line = record.model_dump_json(by_alias=True) + "\n"
        try:
            if self._fh is None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self._fh = self.path.open("ab")
            offset = self._fh.tell()
            self._fh.write(line.encode("utf-8"))
            self._fh.flush()
            os.fsync(self._fh.fileno())
        except OSError as exc:
            raise OutputStreamError(str(self.path), exc) from exc
        self._offsets[self.key(record)] = offset

    def close(self) -> None:
        fh, self._fh = self._fh, None
        if fh is not None:
            fh.close()

    def __enter__(self) -> "ProgressLog[M]":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
