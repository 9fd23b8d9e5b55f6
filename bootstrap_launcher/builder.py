"""Launcher builder.

This module wires the pipeline together:

- It loads the template ``bootstrap.jar``.
- It partitions the resolved artifacts into isolation groups.
- It composes the launcher archive in memory.
- It writes the shell preamble plus archive to the output file and marks it
  executable.
"""

import logging
import pathlib
import time
from typing import Callable

from bootstrap_launcher.composer import compose, load_template_archive
from bootstrap_launcher.errors import OutputExists
from bootstrap_launcher.isolation import IsolationGroup, IsolationTarget, partition
from bootstrap_launcher.launcher import assemble
from bootstrap_launcher.options import BootstrapOptions
from bootstrap_launcher.resolution import Resolution, fetch as fetch_files


def non_http_urls(urls: list[str]) -> list[str]:
    """Return the URLs a launcher cannot download over HTTP(S).

    :param urls: Artifact URLs.
    :returns: URLs not starting with ``http://`` or ``https://``.
    """

    return [u for u in urls if u.startswith("http://") is False and u.startswith("https://") is False]


def build_bootstrap(
    *,
    options: BootstrapOptions,
    resolution: Resolution,
    logger: logging.Logger | None = None,
    template_bytes: bytes | None = None,
    fetch: Callable[[Resolution], list[pathlib.Path]] | None = None,
    timestamp: float | None = None,
) -> None:
    """Build a bootstrap launcher.

    :param options: Validated build options.
    :param resolution: Resolved dependency graph.
    :param logger: Optional logger for realtime build progress output.
    :param template_bytes: Template archive bytes (defaults to :attr:`BootstrapOptions.template`
        or the packaged ``bootstrap.jar``).
    :param fetch: Maps a resolution to its local files.
    :param timestamp: Snapshot time for generated archive entries.
    :raises BootstrapError: If the build fails.
    """

    if logger is None:
        logger = logging.getLogger("bootstrap_launcher")
    if fetch is None:
        fetch = fetch_files

    if template_bytes is None:
        template_bytes = load_template_archive(options.template)

    if options.force is False and options.output.exists() is True:
        raise OutputExists(f"{options.output} already exists, use -f option to force erasing it.")

    t_total0: float = time.perf_counter()
    mode: str = "standalone" if options.standalone is True else f"thin (jar dir {options.download_dir})"
    logger.info(f"bootstrap-launcher: output={options.output}")
    logger.info(f"bootstrap-launcher: main class={options.main_class} mode={mode}")

    targets: list[IsolationTarget] = list(options.isolation_targets)
    groups: dict[str, IsolationGroup] = partition(
        targets,
        resolution,
        standalone=options.standalone,
        fetch=fetch,
    )
    for group in groups.values():
        logger.info(
            f"bootstrap-launcher: isolation target {group.target.name}: "
            f"{len(group.urls)} urls, {len(group.files)} files"
        )

    main_urls: list[str]
    main_files: list[pathlib.Path]
    if options.standalone is True:
        main_urls = []
        main_files = fetch(resolution)
    else:
        main_urls = resolution.urls
        main_files = []
    logger.info(f"bootstrap-launcher: {len(main_urls)} urls, {len(main_files)} files in main set")

    remote: list[str] = non_http_urls(main_urls)
    if len(remote) > 0:
        joined: str = "\n".join(remote)
        logger.warning(f"Warning: non HTTP URLs:\n{joined}")

    t_compose0: float = time.perf_counter()
    archive_bytes: bytes = compose(
        template_bytes=template_bytes,
        main_urls=main_urls,
        main_files=main_files,
        isolation_groups=groups,
        main_class=options.main_class,
        jar_dir=options.download_dir,
        extra_properties=options.properties,
        timestamp=timestamp,
        logger=logger,
    )
    t_compose1: float = time.perf_counter()
    logger.info(
        f"bootstrap-launcher: archive composed ({len(archive_bytes) / (1024 * 1024):.1f} MiB) "
        f"in {t_compose1 - t_compose0:.2f}s"
    )

    assemble(
        java_opts=list(options.java_opts),
        archive_bytes=archive_bytes,
        output_path=options.output,
        overwrite=options.force,
        logger=logger,
    )

    t_total1: float = time.perf_counter()
    logger.info(f"bootstrap-launcher: wrote {options.output} in {t_total1 - t_total0:.2f}s")
