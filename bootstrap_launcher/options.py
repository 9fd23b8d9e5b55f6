"""Launcher build options.

This module turns raw command line values into a validated
:class:`BootstrapOptions`. Validation happens up front so a build never starts
with options it would reject halfway through.
"""

from dataclasses import dataclass, field
import pathlib

from bootstrap_launcher.composer import JAR_DIR_PROPERTY, MAIN_CLASS_PROPERTY
from bootstrap_launcher.errors import MalformedProperty, MissingDownloadDir, MissingMainClass
from bootstrap_launcher.isolation import IsolationTarget, parse_isolated_specs


@dataclass(frozen=True, slots=True)
class BootstrapOptions:
    """Validated launcher build options.

    :ivar main_class: Class the launcher runs.
    :ivar output: Launcher file to write.
    :ivar standalone: Embed artifact files instead of their URLs.
    :ivar download_dir: Where a thin launcher downloads artifacts (``None`` when standalone).
    :ivar force: Overwrite an existing output file.
    :ivar java_opts: JVM options written into the shell preamble.
    :ivar properties: Extra ``bootstrap.properties`` entries.
    :ivar isolation_targets: Isolation targets, in precedence order.
    :ivar template: Template archive override (``None`` for the packaged one).
    """

    main_class: str
    output: pathlib.Path
    standalone: bool = False
    download_dir: str | None = None
    force: bool = False
    java_opts: tuple[str, ...] = ()
    properties: dict[str, str] = field(default_factory=dict)
    isolation_targets: tuple[IsolationTarget, ...] = ()
    template: pathlib.Path | None = None


_RESERVED_PROPERTIES: frozenset[str] = frozenset({MAIN_CLASS_PROPERTY, JAR_DIR_PROPERTY})


def resolve_bootstrap_options(
    *,
    main_class: str | None,
    output: pathlib.Path,
    standalone: bool,
    download_dir: str | None,
    force: bool,
    java_opts: list[str],
    properties: list[str],
    isolated: list[str],
    isolate_targets: list[str],
    template: pathlib.Path | None,
) -> BootstrapOptions:
    """Validate raw option values into :class:`BootstrapOptions`.

    :param main_class: ``-M/--main`` value.
    :param output: ``-o/--output`` value.
    :param standalone: ``-s/--standalone`` flag.
    :param download_dir: ``-D/--download-dir`` value.
    :param force: ``-f/--force`` flag.
    :param java_opts: ``-J/--java-opt`` values.
    :param properties: ``-P/--property`` values (``key=value``).
    :param isolated: ``-I/--isolated`` values (``TARGET:org:name[:version]``).
    :param isolate_targets: ``-i/--isolate-target`` values.
    :param template: ``--template`` value.
    :returns: Validated options.
    :raises MissingMainClass: If no main class was given.
    :raises MissingDownloadDir: If a thin launcher has no download directory.
    :raises MalformedProperty: If a property lacks ``=`` or overrides a launcher setting.
    :raises MalformedIsolation: If an isolation spec is malformed.
    """

    if main_class is None or len(main_class.strip()) == 0:
        raise MissingMainClass("no main class specified. Specify one with -M or --main")

    if standalone is False and (download_dir is None or len(download_dir) == 0):
        raise MissingDownloadDir(
            "no download dir specified. Specify one with -D or --download-dir\n"
            'E.g. -D "\\$HOME/.app-name/jars"'
        )

    parsed_properties: dict[str, str] = _parse_properties(properties)
    targets: list[IsolationTarget] = parse_isolated_specs(isolated, isolate_targets)

    return BootstrapOptions(
        main_class=main_class.strip(),
        output=output,
        standalone=standalone,
        download_dir=None if standalone is True else download_dir,
        force=force,
        java_opts=tuple(java_opts),
        properties=parsed_properties,
        isolation_targets=tuple(targets),
        template=template,
    )


def _parse_properties(properties: list[str]) -> dict[str, str]:
    """Split ``key=value`` strings on their first ``=``.

    :param properties: Raw property strings.
    :returns: Parsed properties, in order (a repeated key keeps its last value).
    :raises MalformedProperty: If any value lacks ``=`` or sets a launcher setting.
    """

    wrong: list[str] = [p for p in properties if "=" not in p]
    if len(wrong) > 0:
        joined: str = "\n".join(wrong)
        raise MalformedProperty(f"Wrong -P / --property option(s):\n{joined}")

    parsed: dict[str, str] = {}
    for prop in properties:
        key, _, value = prop.partition("=")
        if key in _RESERVED_PROPERTIES:
            raise MalformedProperty(
                f"Property {key!r} is set by the launcher builder; use -M / -D instead."
            )
        parsed[key] = value
    return parsed
