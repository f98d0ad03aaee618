"""Tests for the cargo registry cache lookup."""

import hashlib
import logging

import pytest

from acquire.errors import CacheMiss, UnexpectedCacheStructure
from registry.cache import (
    candidate_cache_dirs,
    cargo_cache_dirs,
    find_cache_dir,
    lookup,
    lookup_all,
)
from versioning.models import VersionRecord

CONTENT = b"pretend this is a gzip tarball"


def record_for(data, name="foo", version="1.0.0"):
    return VersionRecord(
        name=name,
        version=version,
        checksum=hashlib.sha256(data).digest(),
        yanked=False,
        download_url_template="https://dl.example.test/crates",
    )


@pytest.fixture
def cache_dir(tmp_path):
    path = tmp_path / "registry" / "cache" / "example"
    path.mkdir(parents=True)
    return path


class TestFindCacheDir:
    """Deriving the cache directory from an index path."""

    def test_sibling_cache_dir(self, tmp_path, cache_dir):
        index = tmp_path / "registry" / "index" / "example"
        index.mkdir(parents=True)
        assert find_cache_dir(str(index)) == str(cache_dir)

    def test_unexpected_structure(self, tmp_path):
        with pytest.raises(UnexpectedCacheStructure):
            find_cache_dir(str(tmp_path / "somewhere" / "else" / "example"))

    def test_index_parent_must_be_registry(self, tmp_path):
        with pytest.raises(UnexpectedCacheStructure):
            find_cache_dir(str(tmp_path / "other" / "index" / "example"))

    def test_missing_cache_dir_is_a_miss(self, tmp_path):
        with pytest.raises(CacheMiss):
            find_cache_dir(str(tmp_path / "registry" / "index" / "nocache"))


class TestLookup:
    """Cache entries are valid only when the checksum matches."""

    def test_valid_entry(self, cache_dir):
        (cache_dir / "foo-1.0.0.crate").write_bytes(CONTENT)
        assert lookup(str(cache_dir), record_for(CONTENT)) == str(cache_dir / "foo-1.0.0.crate")

    def test_missing_entry(self, cache_dir):
        with pytest.raises(CacheMiss):
            lookup(str(cache_dir), record_for(CONTENT))

    def test_single_flipped_byte_invalidates(self, cache_dir, caplog):
        corrupted = bytearray(CONTENT)
        corrupted[3] ^= 0x01
        (cache_dir / "foo-1.0.0.crate").write_bytes(bytes(corrupted))
        with caplog.at_level(logging.WARNING, logger="registry.cache"):
            with pytest.raises(CacheMiss):
                lookup(str(cache_dir), record_for(CONTENT))
        assert "failed integrity check" in caplog.text


class TestLookupAll:
    """Probing several cache roots in order."""

    def test_first_valid_hit_wins(self, tmp_path):
        first = tmp_path / "a"
        second = tmp_path / "b"
        third = tmp_path / "c"
        for path in (first, second, third):
            path.mkdir()
        (first / "foo-1.0.0.crate").write_bytes(b"corrupt")
        (second / "foo-1.0.0.crate").write_bytes(CONTENT)
        (third / "foo-1.0.0.crate").write_bytes(CONTENT)
        found = lookup_all([str(first), str(second), str(third)], record_for(CONTENT))
        assert found == str(second / "foo-1.0.0.crate")

    def test_exhausted_roots_is_none(self, tmp_path):
        assert lookup_all([str(tmp_path / "missing"), str(tmp_path)], record_for(CONTENT)) is None

    def test_no_roots_is_none(self):
        assert lookup_all([], record_for(CONTENT)) is None


class TestCandidateCacheDirs:
    """Order of probed directories."""

    def test_configured_then_inferred_then_cargo(self, tmp_path, cache_dir):
        index = tmp_path / "registry" / "index" / "example"
        index.mkdir(parents=True)
        cargo_home = tmp_path / "cargo"
        cargo_cache = cargo_home / "registry" / "cache" / "index.crates.io-6f17d22bba15001f"
        cargo_cache.mkdir(parents=True)
        (cargo_home / "registry" / "cache" / "unrelated").mkdir()
        configured = tmp_path / "configured"

        dirs = candidate_cache_dirs([str(configured)], str(index), cargo_home=str(cargo_home))

        assert dirs == [str(configured), str(cache_dir), str(cargo_cache)]

    def test_bad_index_structure_is_skipped(self, tmp_path):
        dirs = candidate_cache_dirs([], str(tmp_path / "flat-index"), cargo_home=str(tmp_path / "nocargo"))
        assert dirs == []

    def test_duplicates_removed(self, tmp_path, cache_dir):
        index = tmp_path / "registry" / "index" / "example"
        index.mkdir(parents=True)
        dirs = candidate_cache_dirs([str(cache_dir)], str(index), cargo_home=str(tmp_path / "nocargo"))
        assert dirs == [str(cache_dir)]

    def test_cargo_cache_dirs_sorted(self, tmp_path):
        base = tmp_path / "registry" / "cache"
        (base / "index.crates.io-b").mkdir(parents=True)
        (base / "index.crates.io-a").mkdir()
        (base / "github.com-1ecc6299db9ec823").mkdir()
        assert cargo_cache_dirs(str(tmp_path)) == sorted([
            str(base / "index.crates.io-a"),
            str(base / "index.crates.io-b"),
            str(base / "github.com-1ecc6299db9ec823"),
        ])
