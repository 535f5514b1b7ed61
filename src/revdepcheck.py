"""revdepcheck - batch package checker

    Resolves the dependencies of a list of packages, brings a private
    dependency library up to date and runs ``R CMD check`` on every package.

    Returns:
        int: Exit code
"""
import logging
import sys

from constants import ExitCodes
from common.errors import ConfigError, MetadataFetchError
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from cli_config import build_config
from check.models import OutcomeStatus
from check.report import export_csv, export_json
from pipeline import run_pipeline


def load_pkgs_file(file_name):
    """Loads the packages from a file.

    Blank lines and lines starting with ``#`` are ignored.

    Args:
        file_name (str): File path containing the list of packages.

    Returns:
        list: List of packages
    """
    try:
        with open(file_name, encoding='utf-8') as file:
            lines = [line.strip() for line in file]
    except FileNotFoundError as e:
        logging.error("File not found: %s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    except IOError as e:
        logging.error("IO error: %s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    return [line for line in lines if line and not line.startswith("#")]


def build_pkglist(args):
    """Build the ordered, de-duplicated target list from CLI inputs."""
    if args.LIST_FROM_FILE:
        names = load_pkgs_file(args.LIST_FROM_FILE)
    else:
        names = [n.strip() for n in (args.SINGLE or []) if n.strip()]
    return list(dict.fromkeys(names))


def export_summary(args, tasks):
    """Write the run summary requested with --output."""
    fmt = None
    if getattr(args, "OUTPUT_FORMAT", None):
        fmt = args.OUTPUT_FORMAT.lower()
    else:
        lower = args.OUTPUT.lower()
        if lower.endswith(".json"):
            fmt = "json"
        elif lower.endswith(".csv"):
            fmt = "csv"
    if fmt is None:
        fmt = "json"
    try:
        if fmt == "csv":
            export_csv(tasks, args.OUTPUT)
        else:
            export_json(tasks, args.OUTPUT)
    except OSError:
        sys.exit(ExitCodes.FILE_ERROR.value)


def main(argv=None):
    """Main function of the program."""
    logger = logging.getLogger(__name__)

    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL, getattr(args, "LOG_FILE", None))

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    try:
        config = build_config(args)
    except ConfigError as e:
        logging.error("%s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    pkglist = build_pkglist(args)
    if not pkglist:
        logging.warning("No packages found in the input list.")
        sys.exit(ExitCodes.SUCCESS.value)
    logging.info("Package list imported: %s", ", ".join(pkglist))

    try:
        summary = run_pipeline(pkglist, config)
    except MetadataFetchError as e:
        logging.error("%s", e)
        sys.exit(ExitCodes.CONNECTION_ERROR.value)
    except KeyboardInterrupt:
        logging.warning("Interrupted by user")
        sys.exit(ExitCodes.INTERRUPTED.value)

    run = summary.check_run
    logging.info(
        "%d passed, %d failed, %d skipped",
        len(run.with_status(OutcomeStatus.PASSED)),
        len(run.with_status(OutcomeStatus.FAILED)),
        len(run.with_status(OutcomeStatus.SKIPPED)),
    )
    for task in run.with_status(OutcomeStatus.FAILED):
        logging.warning("%s: %s", task.name, task.outcome.reason)

    if getattr(args, "OUTPUT", None):
        export_summary(args, run.tasks)

    print(summary.check_dir)

    if run.has_failures and args.ERROR_ON_FAILURES:
        logging.error("Failures present, exiting with non-zero status code.")
        sys.exit(ExitCodes.EXIT_FAILURES.value)
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
