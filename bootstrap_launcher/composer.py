"""Bootstrap archive composer.

The composed archive is the template ``bootstrap.jar`` copied entry by entry,
followed by generated entries:

- ``bootstrap-jar-urls`` / ``bootstrap-jar-resources`` for the main artifacts.
- ``bootstrap-isolation-ids`` and per-target ``bootstrap-isolation-<name>-jar-urls``
  / ``bootstrap-isolation-<name>-jar-resources`` when isolation is configured.
- ``jars/<filename>`` for every embedded artifact (standalone launchers).
- ``bootstrap.properties`` with the launcher settings.

The archive is built in memory; nothing touches the output path here.
"""

import importlib.resources
import io
import logging
import os
import pathlib
import time
from typing import Iterator
import zipfile

from bootstrap_launcher.errors import (
    ArtifactNameCollision,
    ArtifactReadError,
    MissingTemplateResource,
    TemplateArchiveError,
)
from bootstrap_launcher.isolation import IsolationGroup, any_isolated_dep


TEMPLATE_RESOURCE: str = "bootstrap.jar"

MAIN_CLASS_PROPERTY: str = "bootstrap.mainClass"
JAR_DIR_PROPERTY: str = "bootstrap.jarDir"

# Earliest timestamp a ZIP entry can carry.
_ZIP_EPOCH: tuple[int, int, int, int, int, int] = (1980, 1, 1, 0, 0, 0)


def load_template_archive(path: pathlib.Path | None = None) -> bytes:
    """Load the template launcher archive.

    :param path: Optional override; defaults to the packaged ``bootstrap.jar``.
    :returns: Template archive bytes.
    :raises MissingTemplateResource: If the archive cannot be found.
    """

    if path is not None:
        try:
            return path.read_bytes()
        except OSError as e:
            raise MissingTemplateResource(f"bootstrap JAR not found: {path} ({e.strerror or e})") from e

    resource = importlib.resources.files("bootstrap_launcher.resources").joinpath(TEMPLATE_RESOURCE)
    try:
        return resource.read_bytes()
    except OSError as e:
        raise MissingTemplateResource(f"bootstrap JAR not found ({e.strerror or e})") from e


def iter_entries(archive_bytes: bytes) -> Iterator[tuple[zipfile.ZipInfo, bytes]]:
    """Yield ``(info, data)`` for each entry of an archive, in archive order.

    :param archive_bytes: ZIP archive bytes.
    :returns: Iterator over entries; exhausting it means the archive ended.
    :raises TemplateArchiveError: If the archive or one of its entries is unreadable.
    """

    try:
        zf = zipfile.ZipFile(io.BytesIO(archive_bytes), "r")
    except zipfile.BadZipFile as e:
        raise TemplateArchiveError(f"Template archive is not a valid ZIP file: {e}") from e

    with zf:
        for info in zf.infolist():
            try:
                data: bytes = zf.read(info)
            except (zipfile.BadZipFile, NotImplementedError, EOFError) as e:
                raise TemplateArchiveError(f"Cannot read template entry {info.filename!r}: {e}") from e
            yield info, data


def jar_path(path: pathlib.Path) -> str:
    """Return the archive path an artifact file is embedded at.

    :param path: Artifact file.
    :returns: ``jars/<filename>``.
    """

    return f"jars/{path.name}"


def zip_date_time(timestamp: float) -> tuple[int, int, int, int, int, int]:
    """Convert a POSIX timestamp into a ZIP ``date_time`` tuple (local time).

    :param timestamp: Seconds since the epoch.
    :returns: ``(year, month, day, hour, minute, second)``, clamped to 1980.
    """

    t: time.struct_time = time.localtime(timestamp)
    date_time: tuple[int, int, int, int, int, int] = (
        t.tm_year,
        t.tm_mon,
        t.tm_mday,
        t.tm_hour,
        t.tm_min,
        t.tm_sec,
    )
    if date_time < _ZIP_EPOCH:
        return _ZIP_EPOCH
    return date_time


def render_properties(properties: dict[str, str]) -> bytes:
    """Render properties in Java ``.properties`` format.

    Output is ASCII: characters outside the printable range are written as
    ``\\uXXXX`` escapes, the way ``java.util.Properties.store`` does. Unlike
    ``store`` no date comment is written.

    :param properties: Key/value pairs, written in order.
    :returns: Encoded properties text.
    """

    lines: list[str] = ["#"]
    for key, value in properties.items():
        lines.append(f"{_escape_property(key, escape_space=True)}={_escape_property(value, escape_space=False)}")
    return ("\n".join(lines) + "\n").encode("ascii")


_PROPERTY_ESCAPES: dict[str, str] = {
    "\\": "\\\\",
    "\t": "\\t",
    "\n": "\\n",
    "\r": "\\r",
    "\f": "\\f",
    "=": "\\=",
    ":": "\\:",
    "#": "\\#",
    "!": "\\!",
}


def _escape_property(text: str, *, escape_space: bool) -> str:
    """Escape a key or value for a ``.properties`` file.

    :param text: Raw key or value.
    :param escape_space: Escape every space (keys) rather than only a leading one.
    :returns: Escaped text.
    """

    out: list[str] = []
    for i, ch in enumerate(text):
        if ch == " ":
            out.append("\\ " if (i == 0 or escape_space is True) else " ")
        elif ch in _PROPERTY_ESCAPES:
            out.append(_PROPERTY_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) > 0x7E:
            # Characters outside the BMP become a UTF-16 surrogate pair.
            units: bytes = ch.encode("utf-16-be")
            for j in range(0, len(units), 2):
                out.append(f"\\u{units[j]:02X}{units[j + 1]:02X}")
        else:
            out.append(ch)
    return "".join(out)


class _ArchiveWriter:
    """Append-only writer that refuses to write an entry name twice."""

    def __init__(self, zf: zipfile.ZipFile, *, date_time: tuple[int, int, int, int, int, int]) -> None:
        self._zf: zipfile.ZipFile = zf
        self._date_time: tuple[int, int, int, int, int, int] = date_time
        self._origins: dict[str, str] = {}

    def _claim(self, name: str, origin: str) -> None:
        previous: str | None = self._origins.get(name)
        if previous is not None:
            raise ArtifactNameCollision(
                f"Archive entry {name!r} would be written twice ({previous} and {origin})."
            )
        self._origins[name] = origin

    def copy(self, info: zipfile.ZipInfo, data: bytes) -> None:
        """Copy an entry from another archive, keeping its metadata."""

        self._claim(info.filename, "template")
        copied: zipfile.ZipInfo = zipfile.ZipInfo(info.filename, date_time=info.date_time)
        copied.compress_type = info.compress_type
        copied.comment = info.comment
        copied.extra = info.extra
        copied.create_system = info.create_system
        copied.external_attr = info.external_attr
        copied.internal_attr = info.internal_attr
        self._zf.writestr(copied, data)

    def put_text(self, name: str, content: str) -> None:
        """Write a generated UTF-8 text entry."""

        self.put_bytes(name, content.encode("utf-8"))

    def put_bytes(self, name: str, data: bytes) -> None:
        """Write a generated entry stamped with the run's snapshot time."""

        self._claim(name, "generated")
        info: zipfile.ZipInfo = zipfile.ZipInfo(name, date_time=self._date_time)
        info.compress_type = zipfile.ZIP_DEFLATED
        info.external_attr = 0o644 << 16
        self._zf.writestr(info, data)

    def put_file(self, name: str, path: pathlib.Path) -> None:
        """Embed a file, stamped with its own modification time."""

        self._claim(name, str(path))
        try:
            with open(path, "rb") as f:
                data: bytes = f.read()
            mtime: float = os.stat(path).st_mtime
        except OSError as e:
            raise ArtifactReadError(f"Cannot read artifact {path}: {e.strerror or e}") from e

        info: zipfile.ZipInfo = zipfile.ZipInfo(name, date_time=zip_date_time(mtime))
        info.compress_type = zipfile.ZIP_DEFLATED
        info.external_attr = 0o644 << 16
        self._zf.writestr(info, data)


def _embedded_files(
    main_files: list[pathlib.Path],
    isolation_groups: dict[str, IsolationGroup],
) -> list[pathlib.Path]:
    """List the files to embed: main files, then group files, each entry name once.

    A path whose ``jars/`` entry was already taken by the same real file is
    skipped. Aliases of one file under different filenames are each embedded,
    so every name a manifest lists has its own entry. Distinct files sharing a
    name are kept and rejected by the writer.

    :param main_files: Main artifact files.
    :param isolation_groups: Isolation groups, in target order.
    :returns: Files to embed.
    """

    embedded: dict[str, str] = {}
    files: list[pathlib.Path] = []
    candidates: list[pathlib.Path] = list(main_files)
    for group in isolation_groups.values():
        candidates.extend(group.files)
    for path in candidates:
        name: str = jar_path(path)
        real: str = os.path.realpath(path)
        if embedded.get(name) == real:
            continue
        embedded.setdefault(name, real)
        files.append(path)
    return files


def compose(
    *,
    template_bytes: bytes,
    main_urls: list[str],
    main_files: list[pathlib.Path],
    isolation_groups: dict[str, IsolationGroup],
    main_class: str,
    jar_dir: str | None,
    extra_properties: dict[str, str] | None = None,
    timestamp: float | None = None,
    logger: logging.Logger | None = None,
) -> bytes:
    """Compose the launcher archive.

    :param template_bytes: Template ``bootstrap.jar`` bytes.
    :param main_urls: URLs of the main (non-isolated) artifacts (thin mode).
    :param main_files: Files of the main artifacts (standalone mode).
    :param isolation_groups: Partition result, in target order.
    :param main_class: Class the launcher runs.
    :param jar_dir: Download directory for thin launchers, ``None`` when standalone.
    :param extra_properties: Additional ``bootstrap.properties`` entries.
    :param timestamp: Snapshot time for generated entries (defaults to now).
    :param logger: Optional logger for debug output.
    :returns: Archive bytes.
    :raises TemplateArchiveError: If the template cannot be read.
    :raises ArtifactReadError: If an artifact file cannot be read.
    :raises ArtifactNameCollision: If two inputs map to one entry name.
    """

    if logger is None:
        logger = logging.getLogger("bootstrap_launcher")
    if timestamp is None:
        timestamp = time.time()

    buf: io.BytesIO = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        writer: _ArchiveWriter = _ArchiveWriter(zf, date_time=zip_date_time(timestamp))

        copied: int = 0
        for info, data in iter_entries(template_bytes):
            writer.copy(info, data)
            copied += 1
        if logger.isEnabledFor(logging.DEBUG) is True:
            logger.debug(f"bootstrap-launcher: copied {copied} template entries")

        writer.put_text("bootstrap-jar-urls", "\n".join(main_urls))

        groups: list[IsolationGroup] = list(isolation_groups.values())
        if any_isolated_dep([g.target for g in groups]) is True:
            writer.put_text("bootstrap-isolation-ids", "\n".join(g.target.name for g in groups))
            for group in groups:
                name: str = group.target.name
                writer.put_text(f"bootstrap-isolation-{name}-jar-urls", "\n".join(group.urls))
                writer.put_text(
                    f"bootstrap-isolation-{name}-jar-resources",
                    "\n".join(jar_path(f) for f in group.files),
                )

        for path in _embedded_files(main_files, isolation_groups):
            if logger.isEnabledFor(logging.DEBUG) is True:
                logger.debug(f"bootstrap-launcher: embedding {path} as {jar_path(path)}")
            writer.put_file(jar_path(path), path)

        writer.put_text("bootstrap-jar-resources", "\n".join(jar_path(f) for f in main_files))

        properties: dict[str, str] = {MAIN_CLASS_PROPERTY: main_class}
        if jar_dir is not None:
            properties[JAR_DIR_PROPERTY] = jar_dir
        for key, value in (extra_properties or {}).items():
            properties.setdefault(key, value)
        writer.put_bytes("bootstrap.properties", render_properties(properties))

    return buf.getvalue()
