"""Constants used in the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

VERSION = "0.2.0"


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    ACQUISITION_FAILED = 1
    CONNECTION_ERROR = 2


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    USER_AGENT = f"cratedl/{VERSION}"
    CRATE_SIZE_LIMIT = 40 * 1024 * 1024  # Hard cap on downloaded artifact bytes
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3

    INDEX_URL = "https://index.crates.io"
    INDEX_DIR = os.path.join(
        os.path.expanduser("~"), ".cache", "cratedl", "registry", "index", "index.crates.io"
    )
    DEFAULT_DL_TEMPLATE = "https://static.crates.io/crates"
    CARGO_HOME = os.environ.get("CARGO_HOME") or os.path.join(os.path.expanduser("~"), ".cargo")
    # Cargo names its per-registry cache directories "<host>-<hash>"
    CARGO_REGISTRY_PREFIXES = ["index.crates.io-", "github.com-"]
    CACHE_DIRS: list = []

    MAX_WORKERS = 8
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "CRATEDL_LOG_LEVEL"
    ENV_CONFIG = "CRATEDL_CONFIG"


def _default_config_paths():
    """Candidate YAML config locations, most specific first."""
    paths = []
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        paths.append(env_path)
    xdg = os.environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    paths.append(os.path.join(xdg, "cratedl", "cratedl.yml"))
    paths.append(os.path.join(xdg, "cratedl", "cratedl.yaml"))
    return paths


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the YAML config from an explicit path or the default locations.

    Returns an empty dict when no file is found. A file that exists but cannot
    be parsed is reported and ignored.
    """
    import yaml  # pylint: disable=import-outside-toplevel

    candidates = [path] if path else _default_config_paths()
    for candidate in candidates:
        if not candidate or not os.path.isfile(candidate):
            continue
        try:
            with open(candidate, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Failed to load config %s: %s", candidate, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring config %s: top level must be a mapping", candidate)
            return {}
        logger.debug("Loaded config from %s", candidate)
        return data
    return {}


def _apply_yaml_config(cfg: Dict[str, Any]) -> None:
    """Apply config sections onto Constants. Unknown keys are ignored."""
    http = cfg.get("http") or {}
    if isinstance(http, dict):
        if "request_timeout" in http:
            Constants.REQUEST_TIMEOUT = int(http["request_timeout"])
        if "retry_max" in http:
            Constants.HTTP_RETRY_MAX = int(http["retry_max"])
        if "retry_base_delay_sec" in http:
            Constants.HTTP_RETRY_BASE_DELAY_SEC = float(http["retry_base_delay_sec"])
        if "user_agent" in http:
            Constants.USER_AGENT = str(http["user_agent"])

    index = cfg.get("index") or {}
    if isinstance(index, dict):
        if index.get("url"):
            Constants.INDEX_URL = str(index["url"]).rstrip("/")
        if index.get("dir"):
            Constants.INDEX_DIR = os.path.expanduser(str(index["dir"]))

    cache = cfg.get("cache") or {}
    if isinstance(cache, dict):
        dirs = cache.get("dirs")
        if isinstance(dirs, list):
            Constants.CACHE_DIRS = [os.path.expanduser(str(d)) for d in dirs]
        if cache.get("cargo_home"):
            Constants.CARGO_HOME = os.path.expanduser(str(cache["cargo_home"]))

    download = cfg.get("download") or {}
    if isinstance(download, dict):
        if "size_limit" in download:
            Constants.CRATE_SIZE_LIMIT = int(download["size_limit"])
        if "max_workers" in download:
            Constants.MAX_WORKERS = max(1, int(download["max_workers"]))
