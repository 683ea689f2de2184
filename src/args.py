"""Argument parsing functionality for realdeps."""

import argparse
from constants import Constants


def strip_subcommand(argv):
    """Drop the subcommand name cargo inserts when running ``cargo real-deps``."""
    return [a for a in argv if a.lower() != Constants.SUBCOMMAND_NAME]


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="cargo real-deps",
        description=(
            "Lists the dependencies a project actually uses once versions "
            "and features are resolved"
        ),
        add_help=True,
    )

    parser.add_argument("path",
                        nargs="?",
                        help="Project directory, or path to Cargo.toml",
                        action="store", type=str,
                        default=None)

    parser.add_argument("--all-features",
                        dest="ALL_FEATURES",
                        help="Activate all features",
                        action="store_true")
    parser.add_argument("--no-default-features",
                        dest="NO_DEFAULT_FEATURES",
                        help="Deactivate default features",
                        action="store_true")
    parser.add_argument("--features",
                        dest="FEATURES",
                        help="Activates some features (comma or space separated, may be repeated)",
                        action="append", type=str,
                        default=[])
    parser.add_argument("-c", "--count",
                        dest="COUNT",
                        help="Prints only the total number of dependencies",
                        action="store_true")

    parser.add_argument("--index",
                        dest="INDEX",
                        help="Path to a local crates.io-style registry index",
                        action="store",
                        type=str)
    parser.add_argument("--dev",
                        dest="INCLUDE_DEV",
                        help="Include dev-dependencies",
                        action="store_true")
    parser.add_argument("--build",
                        dest="INCLUDE_BUILD",
                        help="Include build-dependencies",
                        action="store_true")
    parser.add_argument("--single-version",
                        dest="SINGLE_VERSION",
                        help="Forbid several semver-incompatible versions of one package",
                        action="store_true")
    parser.add_argument("--include-root",
                        dest="INCLUDE_ROOT",
                        help="List the root package itself",
                        action="store_true")

    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to output file (JSON or CSV)",
                        action="store",
                        type=str)
    parser.add_argument("-f", "--format",
                        dest="OUTPUT_FORMAT",
                        help="Output format (json or csv). If not specified, inferred from --output extension; defaults to json.",
                        action="store",
                        type=str.lower,
                        choices=Constants.OUTPUT_FORMATS)

    parser.add_argument("--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default=None)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
