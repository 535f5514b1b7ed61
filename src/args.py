"""Argument parsing functionality for revdepcheck."""

import argparse


def _positive_int(text):
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return value


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="revdepcheck",
        description=(
            "revdepcheck - Batch-check source packages against a private dependency library"
        ),
        add_help=True,
    )

    input_group = parser.add_mutually_exclusive_group(required=True)
    input_group.add_argument("-l", "--load_list",
                        dest="LIST_FROM_FILE",
                        help="Load list of packages to check from a file (one per line)",
                        action="store", type=str)
    input_group.add_argument("-p", "--package",
                            dest="SINGLE",
                            help="Name a package to check (repeatable).",
                            action="append", type=str)

    parser.add_argument("--libpath",
                        dest="LIBPATH",
                        help="Library used to install dependencies (created if absent)",
                        action="store", type=str)
    parser.add_argument("--srcpath",
                        dest="SRCPATH",
                        help="Directory caching downloaded source archives (defaults to --libpath)",
                        action="store", type=str)
    parser.add_argument("--check-dir",
                        dest="CHECK_DIR",
                        help="Directory to store results (defaults to a new temporary directory)",
                        action="store", type=str)
    parser.add_argument("-j", "--threads",
                        dest="THREADS",
                        help="Number of concurrent checks (default: $REVDEPCHECK_NCPUS or 1)",
                        action="store", type=_positive_int)
    parser.add_argument("-t", "--type",
                        dest="PLATFORM_TYPE",
                        help="Binary package type used for dependencies, i.e: source, win.binary, mac.binary",
                        action="store", type=str)
    parser.add_argument("--repo",
                        dest="REPOSITORY",
                        help="Primary repository URL",
                        action="store", type=str)
    parser.add_argument("--secondary",
                        dest="SECONDARY",
                        help="Also use the secondary repositories (Bioconductor by default)",
                        action="store_true", default=None)
    parser.add_argument("--r-version",
                        dest="R_VERSION",
                        help="R major.minor version used to locate binary packages",
                        action="store", type=str)
    parser.add_argument("--site-library",
                        dest="SITE_LIBRARIES",
                        help="Extra library consulted for already installed packages (repeatable)",
                        action="append", type=str)
    parser.add_argument("--check-timeout",
                        dest="CHECK_TIMEOUT",
                        help="Seconds after which a single check is abandoned (default: no limit)",
                        action="store", type=float)
    parser.add_argument("--revdep-of",
                        dest="REVDEP_OF",
                        help="Package whose reverse dependencies are being checked (logging only)",
                        action="store", type=str)

    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to a run summary file (JSON or CSV)",
                        action="store",
                        type=str)
    parser.add_argument("-f", "--format",
                        dest="OUTPUT_FORMAT",
                        help="Output format (json or csv). If not specified, inferred from --output extension; defaults to json.",
                        action="store",
                        type=str.lower,
                        choices=['json', 'csv'])
    parser.add_argument("--error-on-failures",
                        dest="ERROR_ON_FAILURES",
                        help="Exit with a non-zero status code if any check failed.",
                        action="store_true")

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--set",
                        dest="CONFIG_SET",
                        help="Set configuration override (KEY=VALUE format, can be used multiple times)",
                        action="append",
                        type=str,
                        default=[])

    return parser.parse_args(argv)
