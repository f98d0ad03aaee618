"""cratedl - download (and optionally extract) crate archives from a registry.

    Returns:
        int: Exit code
"""
import logging
import sys

from constants import Constants, ExitCodes
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from cli_config import apply_cli_overrides, build_options, load_config
from acquire.events import EventStream, LoggingReporter
from acquire.orchestrator import AcquisitionOrchestrator
from registry.index import IndexUpdateError, RegistryIndex


def main(argv=None):
    """Main function of the program."""
    logger = logging.getLogger(__name__)

    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL, args.LOG_FILE)
    load_config(args)
    apply_cli_overrides(args)
    options = build_options(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(
                event="function_entry",
                component="cli",
                action="main",
                specs=[str(s) for s in args.specs],
            ),
        )

    index = RegistryIndex(Constants.INDEX_DIR, Constants.INDEX_URL)
    reporter = None
    emit = None
    if not args.QUIET:
        stream = EventStream()
        reporter = LoggingReporter(stream)
        reporter.start()
        emit = stream.emit

    orchestrator = AcquisitionOrchestrator(index, options, emit)
    try:
        summary = orchestrator.run(args.specs)
    except IndexUpdateError as exc:
        logger.error("Updating the registry index failed: %s", exc)
        sys.exit(ExitCodes.CONNECTION_ERROR.value)
    finally:
        if reporter is not None:
            reporter.stop()

    if summary.ok:
        sys.exit(ExitCodes.SUCCESS.value)

    if args.QUIET:
        for outcome in summary.failed:
            logger.error("%s: %s", outcome.spec, outcome.reason)
    logger.error(
        "Failed to acquire %d of %d crate(s)",
        len(summary.failed),
        len(summary.outcomes),
    )
    sys.exit(ExitCodes.ACQUISITION_FAILED.value)


if __name__ == "__main__":
    main()
