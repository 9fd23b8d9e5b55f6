"""Launcher file assembly.

A launcher is a two-line shell script immediately followed by the composed
archive. ZIP readers find the central directory from the end of the file and
ignore the leading script, while ``sh`` only ever reads the script; the same
file therefore runs as ``./launcher`` and as ``java -jar launcher``.
"""

import logging
import os
import pathlib
import stat

from bootstrap_launcher.errors import OutputExists, OutputWriteError, PermissionAdjustError


_EXECUTE_FOR_READ: tuple[tuple[int, int], ...] = (
    (stat.S_IRUSR, stat.S_IXUSR),
    (stat.S_IRGRP, stat.S_IXGRP),
    (stat.S_IROTH, stat.S_IXOTH),
)


def quote_java_opt(opt: str) -> str:
    """Single-quote a JVM option for the preamble (``'`` becomes ``\\'``).

    :param opt: Raw JVM option.
    :returns: Quoted option.
    """

    escaped: str = opt.replace("'", "\\'")
    return f"'{escaped}'"


def render_preamble(java_opts: list[str]) -> str:
    """Render the shell preamble.

    :param java_opts: JVM options passed before ``-jar``.
    :returns: Preamble text, ending with a newline.
    """

    words: list[str] = ["exec", "java"]
    words.extend(quote_java_opt(o) for o in java_opts)
    words.extend(["-jar", '"$0"', '"$@"'])
    return "#!/usr/bin/env sh\n" + " ".join(words) + "\n"


def executable_mode(mode: int) -> int:
    """Add execute permission wherever read permission is set.

    :param mode: Permission bits.
    :returns: Permission bits with the matching execute bits added.
    """

    new_mode: int = mode
    for read_bit, exec_bit in _EXECUTE_FOR_READ:
        if mode & read_bit:
            new_mode |= exec_bit
    return new_mode


def make_executable(path: pathlib.Path, *, logger: logging.Logger | None = None) -> None:
    """Make a file executable by everyone who can read it.

    Platforms without POSIX permissions are skipped silently.

    :param path: File to update.
    :param logger: Optional logger for debug output.
    :raises PermissionAdjustError: If the permission bits cannot be read or written.
    """

    if logger is None:
        logger = logging.getLogger("bootstrap_launcher")

    if os.name != "posix":
        logger.debug(f"bootstrap-launcher: no POSIX permissions on this platform; not changing mode of {path}")
        return

    try:
        mode: int = stat.S_IMODE(os.stat(path).st_mode)
        new_mode: int = executable_mode(mode)
        if new_mode != mode:
            os.chmod(path, new_mode)
            if logger.isEnabledFor(logging.DEBUG) is True:
                logger.debug(f"bootstrap-launcher: mode of {path} {mode:o} -> {new_mode:o}")
    except OSError as e:
        raise PermissionAdjustError(f"Error while making {path} executable ({e.strerror or e})") from e


def assemble(
    *,
    java_opts: list[str],
    archive_bytes: bytes,
    output_path: pathlib.Path,
    overwrite: bool,
    logger: logging.Logger | None = None,
) -> None:
    """Write the launcher file and make it executable.

    The preamble and archive are joined in memory before the output file is
    opened, so a failure while composing never leaves a partial launcher.

    :param java_opts: JVM options for the preamble.
    :param archive_bytes: Composed archive.
    :param output_path: Destination file.
    :param overwrite: Replace an existing destination.
    :param logger: Optional logger for debug output.
    :raises OutputExists: If the destination exists and ``overwrite`` is false.
    :raises OutputWriteError: If the file cannot be written.
    :raises PermissionAdjustError: If the file cannot be made executable.
    """

    if logger is None:
        logger = logging.getLogger("bootstrap_launcher")

    if overwrite is False and output_path.exists() is True:
        raise OutputExists(f"{output_path} already exists, use -f option to force erasing it.")

    preamble: str = render_preamble(java_opts)
    content: bytes = preamble.encode("utf-8") + archive_bytes
    if logger.isEnabledFor(logging.DEBUG) is True:
        logger.debug(f"bootstrap-launcher: preamble={preamble.splitlines()[1]!r}")

    try:
        with open(output_path, "wb") as f:
            f.write(content)
    except OSError as e:
        raise OutputWriteError(f"Error while writing {output_path} ({e.strerror or e})") from e

    make_executable(output_path, logger=logger)
