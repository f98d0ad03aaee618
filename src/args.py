"""Argument parsing functionality for cratedl."""

import argparse

from constants import VERSION
from versioning.parser import SpecParseError, parse_spec


def _spec_argument(token):
    """argparse ``type`` for CRATE[@VERSION_REQ] tokens."""
    try:
        return parse_spec(token)
    except SpecParseError as exc:
        raise argparse.ArgumentTypeError(f"invalid value {token!r}: {exc}") from exc


def build_parser():
    """Build the argument parser (exposed for tests and help output)."""
    parser = argparse.ArgumentParser(
        prog="cratedl",
        description=(
            "Download crate archives from a registry, optionally extracting them"
        ),
        add_help=True,
    )

    parser.add_argument("specs",
                        metavar="CRATE[@VERSION_REQ]",
                        help="The crate(s) to download, optionally with a semver requirement after '@' "
                             "in the format used in Cargo.toml. Without one the newest non-prerelease, "
                             "non-yanked version is fetched.",
                        nargs="+",
                        type=_spec_argument)
    parser.add_argument("-x", "-e", "--extract",
                        dest="EXTRACT",
                        help="Extract the crate into a directory named after it instead of writing the archive.",
                        action="store_true")
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Explicit output file (or directory with --extract). Only valid for a single crate.",
                        action="store",
                        type=str)
    parser.add_argument("--allow-yanked",
                        dest="ALLOW_YANKED",
                        help="Allow yanked versions to be chosen.",
                        action="store_true")
    parser.add_argument("--no-cache",
                        dest="USE_CACHE",
                        help="Disable checking the cargo cache for the crate file.",
                        action="store_false")
    parser.add_argument("--no-index-update",
                        dest="UPDATE_INDEX",
                        help="Do not update the index before downloading (an outdated index may miss "
                             "the latest matching version).",
                        action="store_false")
    parser.add_argument("--cache-dir",
                        dest="CACHE_DIRS",
                        help="Additional registry cache directory to probe before the defaults "
                             "(can be used multiple times).",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--index-dir",
                        dest="INDEX_DIR",
                        help="Directory holding the local index snapshot.",
                        action="store",
                        type=str)
    parser.add_argument("--index-url",
                        dest="INDEX_URL",
                        help="Base URL of the sparse registry index.",
                        action="store",
                        type=str)
    parser.add_argument("-j", "--jobs",
                        dest="JOBS",
                        help="Maximum number of crates acquired in parallel.",
                        action="store",
                        type=int)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not report per-crate progress.",
                        action="store_true")
    parser.add_argument("-V", "--version",
                        action="version",
                        version=f"%(prog)s {VERSION}")
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.OUTPUT and len(args.specs) > 1:
        parser.error("cannot use --output with multiple crates")
    if args.JOBS is not None and args.JOBS < 1:
        parser.error("--jobs must be at least 1")
    return args
