"""Runtime configuration: YAML file first, then CLI overrides on top.

Extracted from the entrypoint to keep it slim. CLI values always take
precedence over the config file.
"""

from __future__ import annotations

import logging
import os

from constants import Constants, _apply_yaml_config, _load_yaml_config
from acquire.models import AcquireOptions

logger = logging.getLogger(__name__)


def load_config(args) -> None:
    """Load the YAML config (``--config`` or default locations) into Constants."""
    path = getattr(args, "CONFIG", None)
    if path and not os.path.isfile(path):
        logger.warning("Config file not found: %s", path)
        return
    cfg = _load_yaml_config(path)
    if cfg:
        try:
            _apply_yaml_config(cfg)
        except (TypeError, ValueError) as exc:
            logger.warning("Ignoring invalid config values: %s", exc)


def apply_cli_overrides(args) -> None:
    """Apply CLI overrides for registry locations and tunables."""
    if getattr(args, "INDEX_DIR", None):
        Constants.INDEX_DIR = os.path.abspath(os.path.expanduser(args.INDEX_DIR))
    if getattr(args, "INDEX_URL", None):
        Constants.INDEX_URL = args.INDEX_URL.rstrip("/")
    if getattr(args, "JOBS", None) is not None:
        Constants.MAX_WORKERS = int(args.JOBS)


def build_options(args) -> AcquireOptions:
    """Translate parsed arguments into pipeline options."""
    cache_dirs = list(getattr(args, "CACHE_DIRS", None) or []) + list(Constants.CACHE_DIRS)
    return AcquireOptions(
        extract=bool(getattr(args, "EXTRACT", False)),
        output=getattr(args, "OUTPUT", None),
        allow_yanked=bool(getattr(args, "ALLOW_YANKED", False)),
        use_cache=bool(getattr(args, "USE_CACHE", True)),
        update_index=bool(getattr(args, "UPDATE_INDEX", True)),
        cache_dirs=cache_dirs,
        size_limit=Constants.CRATE_SIZE_LIMIT,
        max_workers=Constants.MAX_WORKERS,
    )
