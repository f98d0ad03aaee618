"""Registry snapshot: a local mirror of a sparse crate index.

The mirror uses the same file layout as the crates.io sparse index, one JSON
record per line. Reads never touch the network; ``update`` refreshes the files
for a set of crate names and is meant to run once, before any resolution.
"""
from __future__ import annotations

import json
import logging
import os
import threading
from typing import Dict, Iterable, List, Optional

import requests

from constants import Constants
from common.http_client import robust_get
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from versioning.models import VersionRecord

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.json"
_DL_MARKERS = ("{crate}", "{version}", "{prefix}", "{lowerprefix}", "{sha256-checksum}")


class RegistryIndexError(Exception):
    """Base error for registry snapshot problems."""


class IndexUpdateError(RegistryIndexError):
    """Refreshing the snapshot from the remote index failed."""


class CorruptIndexFile(RegistryIndexError):
    """A snapshot file exists but cannot be decoded."""


def _prefix(name: str) -> str:
    """Index directory of a crate, keeping the case of ``name``."""
    if len(name) <= 2:
        return str(len(name))
    if len(name) == 3:
        return f"3/{name[0]}"
    return f"{name[0:2]}/{name[2:4]}"


def index_relative_path(name: str) -> str:
    """Path of a crate's index file relative to the index root.

    Names of one to three characters live under ``1/``, ``2/`` and
    ``3/<first char>/``; longer names under ``<ab>/<cd>/``.
    """
    lower = name.lower()
    return f"{_prefix(lower)}/{lower}"


def download_url(record: VersionRecord) -> str:
    return expand_download_url(record.download_url_template, record.name, record.version, record.checksum)


def expand_download_url(template: str, name: str, version: str, checksum: bytes) -> str:
    """Expand a registry ``dl`` template for one crate version."""
    if not any(marker in template for marker in _DL_MARKERS):
        return f"{template.rstrip('/')}/{name}/{version}/download"
    prefix = _prefix(name)
    return (
        template.replace("{crate}", name)
        .replace("{version}", version)
        .replace("{prefix}", prefix)
        .replace("{lowerprefix}", prefix.lower())
        .replace("{sha256-checksum}", checksum.hex())
    )


def parse_index_line(line: str, dl_template: str) -> Optional[VersionRecord]:
    """Parse one JSON-lines index record; malformed lines return None."""
    line = line.strip()
    if not line:
        return None
    try:
        data = json.loads(line)
        checksum = bytes.fromhex(data["cksum"])
        if len(checksum) != 32:
            raise ValueError(f"checksum has {len(checksum)} bytes")
        return VersionRecord(
            name=str(data["name"]),
            version=str(data["vers"]),
            checksum=checksum,
            yanked=bool(data.get("yanked", False)),
            download_url_template=dl_template,
        )
    except (ValueError, KeyError, TypeError) as exc:
        logger.warning("Skipping malformed index record: %s", exc)
        return None


class RegistryIndex:
    """Read-only view of a registry snapshot stored under ``path``."""

    def __init__(self, path: Optional[str] = None, url: Optional[str] = None):
        self.path = os.path.abspath(path or Constants.INDEX_DIR)
        self.url = (url or Constants.INDEX_URL).rstrip("/")
        self._config: Optional[Dict[str, str]] = None
        self._update_lock = threading.Lock()

    def config(self) -> Dict[str, str]:
        """The registry ``config.json``, defaulting to the crates.io download host."""
        if self._config is None:
            cfg: Dict[str, str] = {}
            config_path = os.path.join(self.path, CONFIG_FILE)
            try:
                with open(config_path, "r", encoding="utf-8") as fh:
                    loaded = json.load(fh)
                if isinstance(loaded, dict):
                    cfg = loaded
            except FileNotFoundError:
                pass
            except (OSError, ValueError) as exc:
                logger.warning("Could not read index config %s: %s", config_path, exc)
            self._config = cfg
        return self._config

    def download_template(self) -> str:
        return str(self.config().get("dl") or Constants.DEFAULT_DL_TEMPLATE)

    def crate(self, name: str) -> Optional[List[VersionRecord]]:
        """Records for ``name``, or None if the snapshot does not know the crate.

        Raises:
            CorruptIndexFile: if the crate's index file is not valid UTF-8.
        """
        file_path = os.path.join(self.path, *index_relative_path(name).split("/"))
        try:
            with open(file_path, "r", encoding="utf-8") as fh:
                lines = fh.readlines()
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            raise CorruptIndexFile(f"index file {file_path} is not valid UTF-8: {exc}") from exc
        template = self.download_template()
        records = [r for r in (parse_index_line(line, template) for line in lines) if r is not None]
        return records

    def _write(self, relative: str, text: str) -> None:
        target = os.path.join(self.path, *relative.split("/"))
        try:
            os.makedirs(os.path.dirname(target), exist_ok=True)
            tmp = f"{target}.tmp"
            with open(tmp, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.replace(tmp, target)
        except OSError as exc:
            raise IndexUpdateError(f"writing {target} failed: {exc}") from exc

    def _fetch(self, relative: str) -> Optional[str]:
        url = f"{self.url}/{relative}"
        try:
            status, _, text = robust_get(url)
        except requests.RequestException as exc:
            raise IndexUpdateError(f"fetching {safe_url(url)} failed: {exc}") from exc
        if status == 200:
            return text
        if status in (404, 410, 451):
            return None
        raise IndexUpdateError(f"fetching {safe_url(url)} returned HTTP {status}")

    def update(self, names: Iterable[str]) -> None:
        """Refresh ``config.json`` and the index files of ``names``.

        A crate the remote index does not know has its stale local file
        removed. Raises IndexUpdateError on transport, server or filesystem
        errors.
        """
        with self._update_lock:
            config_text = self._fetch(CONFIG_FILE)
            if config_text is not None:
                self._write(CONFIG_FILE, config_text)
                self._config = None
            for name in dict.fromkeys(n.lower() for n in names):
                relative = index_relative_path(name)
                text = self._fetch(relative)
                if text is None:
                    stale = os.path.join(self.path, *relative.split("/"))
                    try:
                        if os.path.exists(stale):
                            os.remove(stale)
                    except OSError as exc:
                        raise IndexUpdateError(f"removing {stale} failed: {exc}") from exc
                    logger.debug("Crate %s not present in remote index", name)
                    continue
                self._write(relative, text)
                if is_debug_enabled(logger):
                    logger.debug(
                        "Index entry updated",
                        extra=extra_context(
                            event="index_update",
                            component="registry_index",
                            target=name,
                            outcome="success",
                        ),
                    )
