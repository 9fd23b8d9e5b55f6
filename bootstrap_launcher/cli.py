"""Command line interface for bootstrap-launcher."""

import argparse
import logging
import pathlib
import sys

from bootstrap_launcher.builder import build_bootstrap
from bootstrap_launcher.errors import BootstrapError
from bootstrap_launcher.options import BootstrapOptions, resolve_bootstrap_options
from bootstrap_launcher.resolution import Resolution, load_resolution


def _configure_logging(*, verbose: int, quiet: int) -> logging.Logger:
    """Configure the bootstrap-launcher logger.

    :param verbose: Verbosity count (0+).
    :param quiet: Quietness count (0+).
    :returns: Configured logger.
    """

    level: int = logging.INFO
    if quiet >= 2:
        level = logging.ERROR
    elif quiet >= 1:
        level = logging.WARNING
    elif verbose >= 1:
        level = logging.DEBUG

    logger: logging.Logger = logging.getLogger("bootstrap_launcher")
    logger.setLevel(level)
    logger.propagate = False

    handler: logging.Handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger.handlers.clear()
    logger.addHandler(handler)
    return logger


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser.

    :returns: Parser with the ``build`` subcommand.
    """

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="bootstrap-launcher",
        description="Build a self-executing JVM launcher from a resolved dependency graph.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_build = subparsers.add_parser(
        "build",
        help="Build a launcher file.",
    )
    p_build.add_argument(
        "resolution",
        type=pathlib.Path,
        help="Path to the resolution manifest (JSON) describing the resolved artifacts.",
    )
    p_build.add_argument(
        "-M",
        "--main",
        type=str,
        default=None,
        help="Main class the launcher runs.",
    )
    p_build.add_argument(
        "-o",
        "--output",
        type=pathlib.Path,
        default=pathlib.Path("bootstrap"),
        help="Output launcher path (default: ./bootstrap).",
    )
    p_build.add_argument(
        "-s",
        "--standalone",
        action="store_true",
        help="Embed the artifact files in the launcher instead of their URLs.",
    )
    p_build.add_argument(
        "-D",
        "--download-dir",
        type=str,
        default=None,
        help=(
            "Directory a thin launcher downloads artifacts into at first run "
            "(required unless --standalone)."
        ),
    )
    p_build.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Overwrite the output file if it exists.",
    )
    p_build.add_argument(
        "-J",
        "--java-opt",
        action="append",
        default=[],
        help="JVM option written into the launcher's shell preamble. Repeatable.",
    )
    p_build.add_argument(
        "-P",
        "--property",
        action="append",
        default=[],
        help="Extra bootstrap.properties entry as key=value. Repeatable.",
    )
    p_build.add_argument(
        "-I",
        "--isolated",
        action="append",
        default=[],
        help=(
            "Load a module in an isolated classloader, as TARGET:org:name[:version]. "
            "Repeatable; earlier targets take precedence for shared artifacts."
        ),
    )
    p_build.add_argument(
        "-i",
        "--isolate-target",
        action="append",
        default=[],
        help="Declare an isolation target even if no module is assigned to it. Repeatable.",
    )
    p_build.add_argument(
        "--template",
        type=pathlib.Path,
        default=None,
        help="Template launcher archive to use instead of the packaged bootstrap.jar.",
    )
    p_build.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Enable verbose logging. Pass multiple times for more detail.",
    )
    p_build.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Reduce logging. Pass multiple times to suppress more output.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the bootstrap-launcher CLI.

    :param argv: Optional argv list (excluding program name).
    :returns: Exit code.
    """

    parser: argparse.ArgumentParser = _build_parser()
    ns = parser.parse_args(argv)
    if ns.command == "build":
        logger: logging.Logger = _configure_logging(verbose=ns.verbose, quiet=ns.quiet)
        try:
            options: BootstrapOptions = resolve_bootstrap_options(
                main_class=ns.main,
                output=ns.output,
                standalone=ns.standalone,
                download_dir=ns.download_dir,
                force=ns.force,
                java_opts=ns.java_opt,
                properties=ns.property,
                isolated=ns.isolated,
                isolate_targets=ns.isolate_target,
                template=ns.template,
            )
            resolution: Resolution = load_resolution(ns.resolution)
            build_bootstrap(options=options, resolution=resolution, logger=logger)
        except BootstrapError as e:
            logger.error(f"Error: {e}")
            return e.exit_code
        return 0

    raise AssertionError(f"Unhandled command: {ns.command}")


if __name__ == "__main__":
    sys.exit(main())
