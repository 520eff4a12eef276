# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Run manifest listing the artifacts a scoring run produced."""
from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .._version import __version__

MANIFEST_FILENAME = "glyphsim.manifest.json"
MANIFEST_SCHEMA = "glyphsim.manifest"
MANIFEST_SCHEMA_VERSION = 1

__all__ = ["MANIFEST_FILENAME", "build_manifest", "write_manifest"]


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _sha256_file(path: Path, *, chunk_size: int = 1024 * 1024) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()


def _relpath(path: Path, base_dir: Path) -> str:
    try:
        return path.resolve().relative_to(base_dir.resolve()).as_posix()
    except ValueError:
        return path.as_posix()


def _guess_kind(path: Path) -> str:
    if path.is_dir():
        return "render-index" if (path / "index.json").exists() else "dir"
    name = path.name.lower()
    if name.endswith(".json.gz"):
        return "scores"
    suffix = path.suffix.lower()
    if suffix == ".json":
        return "json"
    if suffix == ".jsonl":
        return "jsonl"
    if suffix == ".png":
        return "image"
    return "file"


def build_manifest(
    outdir: Union[str, Path],
    artifacts: Mapping[str, Union[str, Path]],
    *,
    run_id: Optional[str] = None,
    config: Optional[Mapping[str, Any]] = None,
    hash_files: bool = True,
) -> Dict[str, Any]:
    """Describe ``artifacts`` (name -> path) relative to ``outdir``.

    Missing paths are skipped. Files get their size and, unless
    ``hash_files`` is false, a sha256 digest.
    """

    outdir_path = Path(outdir)
    entries: Dict[str, Dict[str, Any]] = {}
    for name, value in artifacts.items():
        path = Path(value)
        if not path.exists():
            continue
        entry: Dict[str, Any] = {"path": _relpath(path, outdir_path), "kind": _guess_kind(path)}
        if path.is_file():
            entry["bytes"] = path.stat().st_size
            if hash_files:
                entry["sha256"] = _sha256_file(path)
        entries[name] = entry

    return {
        "schema": MANIFEST_SCHEMA,
        "schema_version": MANIFEST_SCHEMA_VERSION,
        "glyphsim_version": __version__,
        "created_at": _utc_now_iso(),
        "run_id": run_id,
        "outdir": outdir_path.as_posix(),
        "config": dict(config or {}),
        "artifacts": entries,
    }


def write_manifest(
    outdir: Union[str, Path],
    artifacts: Mapping[str, Union[str, Path]],
    *,
    run_id: Optional[str] = None,
    config: Optional[Mapping[str, Any]] = None,
    hash_files: bool = True,
    filename: str = MANIFEST_FILENAME,
) -> Path:
    outdir_path = Path(outdir)
    outdir_path.mkdir(parents=True, exist_ok=True)
    manifest = build_manifest(outdir_path, artifacts, run_id=run_id, config=config, hash_files=hash_files)
    dest = outdir_path / filename
    tmp = outdir_path / f".{filename}.tmp"
    tmp.write_text(json.dumps(manifest, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    tmp.replace(dest)
    return dest
