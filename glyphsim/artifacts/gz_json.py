# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Streaming gzip JSON output."""
from __future__ import annotations

import gzip
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, TextIO, Union

from ..errors import OutputStreamError
from ..utils.json_utils import json_ready

logger = logging.getLogger(__name__)

__all__ = ["GzJsonWriter", "read_json_gz"]


class GzJsonWriter:
    """Write one JSON object incrementally into ``<path>``.

    Data goes to ``<path>.partial`` and is renamed into place by
    :meth:`close`, so a crash never leaves a truncated document under the
    final name. Array items are written one per line and the stream is
    flushed every ``flush_every`` items.
    """

    def __init__(self, path: Union[str, Path], *, level: int = 6, flush_every: int = 1000) -> None:
        self.path = Path(path)
        self.tmp_path = self.path.with_name(self.path.name + ".partial")
        self.flush_every = max(1, int(flush_every))
        self._fh: Optional[TextIO] = None
        self._fields = 0
        self._items = 0
        self._in_array = False
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = gzip.open(self.tmp_path, "wt", encoding="utf-8", compresslevel=level)
            self._write("{\n")
        except OSError as exc:
            raise OutputStreamError(str(self.tmp_path), exc) from exc

    def _write(self, text: str) -> None:
        if self._fh is None:
            raise OutputStreamError(str(self.path), ValueError("writer is closed"))
        try:
            self._fh.write(text)
        except OSError as exc:
            raise OutputStreamError(str(self.tmp_path), exc) from exc

    def _key(self, name: str) -> None:
        if self._in_array:
            raise ValueError("cannot add a field inside an open array")
        self._write((",\n" if self._fields else "") + json.dumps(name) + ": ")
        self._fields += 1

    def field(self, name: str, value: Any) -> None:
        self._key(name)
        self._write(json.dumps(json_ready(value), ensure_ascii=False, indent=2))

    def begin_array(self, name: str) -> None:
        self._key(name)
        self._write("[")
        self._in_array = True
        self._items = 0

    def item(self, value: Any) -> None:
        if not self._in_array:
            raise ValueError("no open array")
        text = value if isinstance(value, str) else json.dumps(json_ready(value), ensure_ascii=False)
        self._write(("," if self._items else "") + "\n" + text)
        self._items += 1
        if self._items % self.flush_every == 0:
            self.flush()

    def end_array(self) -> None:
        if not self._in_array:
            raise ValueError("no open array")
        self._write("\n]" if self._items else "]")
        self._in_array = False

    def flush(self) -> None:
        if self._fh is not None:
            try:
                self._fh.flush()
            except OSError as exc:
                raise OutputStreamError(str(self.tmp_path), exc) from exc

    def close(self) -> Path:
        if self._in_array:
            self.end_array()
        self._write("\n}\n")
        fh, self._fh = self._fh, None
        try:
            fh.close()
            os.replace(self.tmp_path, self.path)
        except OSError as exc:
            raise OutputStreamError(str(self.path), exc) from exc
        return self.path

    def abort(self) -> None:
        fh, self._fh = self._fh, None
        if fh is not None:
            fh.close()
        if self.tmp_path.exists():
            self.tmp_path.unlink()
            logger.debug("removed partial output %s", self.tmp_path)

    def __enter__(self) -> "GzJsonWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()


def read_json_gz(path: Union[str, Path]) -> Any:
    with gzip.open(path, "rt", encoding="utf-8") as fh:
        return json.load(fh)
