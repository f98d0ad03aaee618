"""Shared fixtures: in-memory crate archives, index snapshots and Constants isolation."""

import hashlib
import io
import json
import os
import tarfile

import pytest

from constants import Constants
from registry.index import index_relative_path

_CONSTANT_NAMES = [
    name for name in vars(Constants)
    if name.isupper() and not name.startswith("_")
]


@pytest.fixture(autouse=True)
def restore_constants():
    """Undo any Constants mutation made by config/CLI code under test."""
    saved = {name: getattr(Constants, name) for name in _CONSTANT_NAMES}
    saved["CACHE_DIRS"] = list(Constants.CACHE_DIRS)
    yield
    for name, value in saved.items():
        setattr(Constants, name, value)


def build_crate(entries, symlinks=None):
    """Return gzip tar bytes holding ``entries`` (path -> bytes).

    ``symlinks`` maps link path -> link target.
    """
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for path, data in entries.items():
            info = tarfile.TarInfo(name=path)
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
        for path, target in (symlinks or {}).items():
            info = tarfile.TarInfo(name=path)
            info.type = tarfile.SYMTYPE
            info.linkname = target
            tar.addfile(info)
    return buf.getvalue()


@pytest.fixture
def make_crate():
    return build_crate


def index_line(name, version, data=b"", yanked=False, checksum=None):
    cksum = checksum or hashlib.sha256(data).hexdigest()
    return json.dumps({
        "name": name,
        "vers": version,
        "deps": [],
        "cksum": cksum,
        "features": {},
        "yanked": yanked,
    })


@pytest.fixture
def write_index(tmp_path):
    """Write a snapshot under ``tmp_path/registry/index/example``.

    Call with ``{crate_name: [index lines]}``; returns the index directory.
    """
    index_dir = tmp_path / "registry" / "index" / "example"

    def _write(crates, dl="https://dl.example.test/crates"):
        index_dir.mkdir(parents=True, exist_ok=True)
        (index_dir / "config.json").write_text(json.dumps({"dl": dl}), encoding="utf-8")
        for name, lines in crates.items():
            target = index_dir.joinpath(*index_relative_path(name).split("/"))
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return str(index_dir)

    return _write


@pytest.fixture
def line():
    return index_line


@pytest.fixture
def chdir_tmp(tmp_path):
    """Run the test with ``tmp_path`` as the working directory."""
    old = os.getcwd()
    os.chdir(tmp_path)
    try:
        yield tmp_path
    finally:
        os.chdir(old)
