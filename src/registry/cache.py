"""Lookup of previously downloaded crates in cargo's local registry cache.

Cargo keeps downloaded archives under
``<root>/registry/cache/<index-dirname>/<name>-<version>.crate``. A cached file
is only trusted when its SHA-256 matches the checksum recorded in the index.
This module never writes to the cache.
"""
from __future__ import annotations

import glob
import logging
import os
from typing import Iterable, List, Optional

from constants import Constants
from acquire.errors import CacheMiss, ChecksumMismatch, UnexpectedCacheStructure
from acquire.integrity import sha256_file, verify_digest
from common.logging_utils import extra_context, is_debug_enabled
from versioning.models import VersionRecord

logger = logging.getLogger(__name__)


def find_cache_dir(index_path: str) -> str:
    """Derive the cache directory that belongs to a registry index path.

    The index must live at ``<root>/registry/index/<dirname>``; the cache is
    then ``<root>/registry/cache/<dirname>``.

    Raises:
        UnexpectedCacheStructure: if the index path has another shape.
        CacheMiss: if the derived cache directory does not exist.
    """
    normalized = os.path.normpath(os.path.abspath(index_path))
    rest, dirname = os.path.split(normalized)
    rest, parent = os.path.split(rest)
    root, grandparent = os.path.split(rest)
    if not dirname or parent != "index" or grandparent != "registry":
        raise UnexpectedCacheStructure(index_path)

    cache_path = os.path.join(root, "registry", "cache", dirname)
    if not os.path.isdir(cache_path):
        raise CacheMiss(f"cache dir {cache_path} does not exist")
    return cache_path


def cargo_cache_dirs(cargo_home: Optional[str] = None) -> List[str]:
    """Existing cargo cache directories for the default registry, sorted."""
    base = os.path.join(cargo_home or Constants.CARGO_HOME, "registry", "cache")
    found = []
    for prefix in Constants.CARGO_REGISTRY_PREFIXES:
        found.extend(p for p in glob.glob(os.path.join(glob.escape(base), prefix + "*")) if os.path.isdir(p))
    return sorted(found)


def candidate_cache_dirs(
    configured: Iterable[str] = (),
    index_path: Optional[str] = None,
    cargo_home: Optional[str] = None,
) -> List[str]:
    """Cache directories to probe, in order, without duplicates.

    Explicitly configured directories come first, then the directory inferred
    from ``index_path``, then cargo's own cache directories.
    """
    candidates: List[str] = [os.path.abspath(os.path.expanduser(d)) for d in configured]
    if index_path:
        try:
            candidates.append(find_cache_dir(index_path))
        except (UnexpectedCacheStructure, CacheMiss) as exc:
            logger.debug("No cache dir inferred from index %s: %s", index_path, exc)
    candidates.extend(cargo_cache_dirs(cargo_home))
    return list(dict.fromkeys(candidates))


def lookup(cache_dir: str, record: VersionRecord) -> str:
    """Return the path of a valid cached archive for ``record`` in ``cache_dir``.

    Raises:
        CacheMiss: if the file is absent or its checksum does not match.
    """
    cache_file = os.path.join(cache_dir, record.crate_filename)
    if not os.path.isfile(cache_file):
        raise CacheMiss(f"cache file {cache_file} does not exist")

    try:
        verify_digest(sha256_file(cache_file), record.checksum)
    except ChecksumMismatch as exc:
        logger.warning(
            "Cached crate %s failed integrity check (%s); ignoring it",
            cache_file,
            exc,
        )
        raise CacheMiss(f"cache file {cache_file} has an invalid checksum") from exc
    return cache_file


def lookup_all(cache_dirs: Iterable[str], record: VersionRecord) -> Optional[str]:
    """Probe ``cache_dirs`` in order; first valid hit wins, None on a miss."""
    for cache_dir in cache_dirs:
        try:
            path = lookup(cache_dir, record)
        except CacheMiss as exc:
            logger.debug("%s %s: %s", record.name, record.version, exc)
            continue
        except OSError as exc:
            logger.debug("%s %s: reading cache in %s failed: %s", record.name, record.version, cache_dir, exc)
            continue
        if is_debug_enabled(logger):
            logger.debug(
                "Cache hit",
                extra=extra_context(
                    event="cache_hit",
                    component="cache",
                    target=record.base_name,
                    path=path,
                ),
            )
        return path
    logger.debug("No cached file for %s %s", record.name, record.version)
    return None
