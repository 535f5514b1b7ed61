"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    EXIT_FAILURES = 3
    INTERRUPTED = 130


class PackageForm(Enum):
    """Form of the packages listed in a repository index.

    Args:
        Enum (string): Package form.
    """

    SOURCE = "source"
    BINARY = "binary"


class DependencyFields:  # pylint: disable=too-few-public-methods
    """DESCRIPTION fields that declare dependencies, grouped by relation kind."""

    STRONG = ("Depends", "Imports", "LinkingTo")
    WEAK = ("Suggests",)
    ALL = STRONG + WEAK


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    PRIMARY_REPOSITORY = "https://cloud.r-project.org"
    SECONDARY_REPOSITORIES = [
        "https://bioconductor.org/packages/release/bioc",
        "https://bioconductor.org/packages/release/data/annotation",
        "https://bioconductor.org/packages/release/data/experiment",
    ]
    SOURCE_INDEX_PATH = "src/contrib"
    INDEX_FILE = "PACKAGES"
    DESCRIPTION_FILE = "DESCRIPTION"
    DEFAULT_PLATFORM_TYPE = "source"
    BINARY_PLATFORM_DIRS = {
        "win.binary": "windows",
        "mac.binary": "macosx",
    }
    ARCHIVE_EXTENSIONS = {
        "source": ".tar.gz",
        "win.binary": ".zip",
        "mac.binary": ".tgz",
    }
    # The interpreter itself shows up in Depends but is never an installable package
    INTERPRETER_PSEUDO_PACKAGE = "R"

    CHECK_ARGS = ["--no-multiarch", "--no-manual", "--no-codoc", "--as-cran"]
    CHECK_ENV = {
        "R_INTERACTIVE": "false",
        "_R_CHECK_CRAN_INCOMING_": "false",
        "_R_CHECK_CRAN_INCOMING_REMOTE_": "false",
        "_R_CHECK_FORCE_SUGGESTS_": "false",
    }
    CHECK_DIR_SUFFIX = ".Rcheck"
    CHECK_TIME_FILE = "check-time.txt"
    CHECK_LOG_FILE = "00check-runner.log"
    SUMMARY_FILE = "check-summary.json"
    SCRATCH_PREFIX = "revdepcheck-"

    LIBRARY_ENV_VAR = "R_LIBS"
    ENV_PREFIX = "REVDEPCHECK_"
    ENV_LOG_LEVEL = "REVDEPCHECK_LOG_LEVEL"
    ENV_NCPUS = "REVDEPCHECK_NCPUS"
    R_EXECUTABLE = "R"
    RSCRIPT_EXECUTABLE = "Rscript"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
