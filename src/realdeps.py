"""realdeps - lists the dependencies a Cargo project really uses

Resolves version requirements and feature flags from the project manifest
and prints one line per resolved package (or just their number).
"""
import logging
import sys

from args import parse_args, strip_subcommand
from cli_config import configure
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from manifest.toml_parser import ManifestParseError
from manifest.workspace import LocalRegistry, ManifestPathError, get_manifest_path
from resolution import (
    CliFeatureSelection,
    InvalidSelection,
    PackageIdentity,
    ResolutionRequest,
    ResolveOptions,
    resolve,
)
from resolution.report import build_entries, count_packages, export_csv, export_json, render_listing

logger = logging.getLogger(__name__)


def build_request(args, registry: LocalRegistry) -> ResolutionRequest:
    """Assemble the resolution request for the workspace root."""
    root = registry.root
    return ResolutionRequest(
        root=PackageIdentity(root.name, root.version, root.source),
        manifests=registry,
        versions=registry,
        features=CliFeatureSelection.from_strings(
            args.FEATURES,
            all_features=args.ALL_FEATURES,
            no_default_features=args.NO_DEFAULT_FEATURES,
        ),
        options=ResolveOptions.from_constants(),
    )


def exit_code_for(error: Exception) -> int:
    """Map a resolution error onto the process exit code."""
    if isinstance(error, InvalidSelection):
        return ExitCodes.SELECTION_ERROR.value
    return ExitCodes.RESOLUTION_ERROR.value


def export_report(args, entries) -> None:
    """Write entries to --output.

    The format comes from --format, then the config file, then the file
    extension (``.csv``, anything else is JSON).
    """
    fmt = getattr(args, "OUTPUT_FORMAT", None) or Constants.OUTPUT_FORMAT
    if fmt is None:
        fmt = "csv" if args.OUTPUT.lower().endswith(".csv") else "json"
    try:
        if fmt == "csv":
            export_csv(entries, args.OUTPUT)
        else:
            export_json(entries, args.OUTPUT)
    except OSError as e:
        logger.error("Output file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def main(argv=None):
    """Main function of the program.

    Exits the process with a code from ``ExitCodes`` rather than returning.
    """
    if argv is None:
        argv = sys.argv[1:]
    args = parse_args(strip_subcommand(argv))
    configure_logging(args.LOG_LEVEL, args.LOG_FILE)
    configure(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main", target=args.path)
        )

    try:
        manifest_path = get_manifest_path(args.path)
        registry = LocalRegistry(manifest_path, Constants.INDEX_PATH)
    except (ManifestPathError, ManifestParseError) as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    outcome = resolve(build_request(args, registry))
    if not outcome.ok:
        logger.error("%s", outcome.error)
        sys.exit(exit_code_for(outcome.error))

    report = outcome.report
    include_root = bool(Constants.INCLUDE_ROOT)
    if args.COUNT:
        sys.stderr.write(Constants.COUNT_LABEL)
        sys.stderr.flush()
        print(count_packages(report, include_root=include_root))
    else:
        for line in render_listing(build_entries(report, include_root=include_root)):
            print(line, file=sys.stderr)

    if args.OUTPUT:
        export_report(args, build_entries(report, include_root=include_root))

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(event="function_exit", component="cli", action="main", outcome="success")
        )
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
