"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    RESOLUTION_ERROR = 2
    SELECTION_ERROR = 3


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    MANIFEST_FILE = "Cargo.toml"
    SUBCOMMAND_NAME = "real-deps"
    DEFAULT_FEATURE = "default"
    DEFAULT_REGISTRY = "crates-io"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "REALDEPS_LOG_LEVEL"
    DEFAULT_LOG_LEVEL = "WARNING"
    INDEX_ENV = "REALDEPS_INDEX"
    COUNT_LABEL = "Total dependencies: "
    OUTPUT_FORMATS = ["json", "csv"]

    # Config file discovery, first match wins
    CONFIG_FILE_NAMES = ["realdeps.yml", "realdeps.yaml"]
    CONFIG_HOME_DIR = "~/.config/realdeps"

    # Resolver tunables (overridable from config file / CLI)
    INDEX_PATH = None
    INCLUDE_DEV = False
    INCLUDE_BUILD = False
    ALLOW_MULTIPLE_VERSIONS = True
    INCLUDE_ROOT = False
    OUTPUT_FORMAT = None
