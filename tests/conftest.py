import io
import json
import os
import pathlib
import zipfile

import pytest

from bootstrap_launcher.resolution import Resolution, load_resolution


ARTIFACT_MTIME: int = 1_600_000_000

MANIFEST: bytes = b"Manifest-Version: 1.0\r\nMain-Class: coursier.Bootstrap\r\n\r\n"
LAUNCHER_CLASS: bytes = b"\xca\xfe\xba\xbe" + bytes(range(64))


def make_template() -> bytes:
    """Build a small template archive with one stored and one deflated entry."""

    buf: io.BytesIO = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        manifest: zipfile.ZipInfo = zipfile.ZipInfo("META-INF/MANIFEST.MF", date_time=(2019, 5, 4, 3, 2, 0))
        manifest.compress_type = zipfile.ZIP_DEFLATED
        zf.writestr(manifest, MANIFEST)

        cls: zipfile.ZipInfo = zipfile.ZipInfo("coursier/Bootstrap.class", date_time=(2018, 1, 2, 3, 4, 6))
        cls.compress_type = zipfile.ZIP_STORED
        zf.writestr(cls, LAUNCHER_CLASS)
    return buf.getvalue()


def write_artifact(path: pathlib.Path, content: bytes) -> pathlib.Path:
    """Write an artifact file with a fixed modification time."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    os.utime(path, (ARTIFACT_MTIME, ARTIFACT_MTIME))
    return path


@pytest.fixture
def template_bytes() -> bytes:
    return make_template()


@pytest.fixture
def template_path(tmp_path: pathlib.Path, template_bytes: bytes) -> pathlib.Path:
    path: pathlib.Path = tmp_path / "template.jar"
    path.write_bytes(template_bytes)
    return path


@pytest.fixture
def resolution_path(tmp_path: pathlib.Path) -> pathlib.Path:
    """A graph where ``app`` depends on ``core`` and two plugins share ``shared``.

    ::

        app:1.0 -> core:1.0
        plugin-a:1.0 -> shared:1.0, core:1.0
        plugin-b:1.0 -> shared:1.0
    """

    repo: str = "https://repo.example.org/maven2"
    modules: dict[str, dict[str, object]] = {
        "org.example:app:1.0": {
            "url": f"{repo}/org/example/app/1.0/app-1.0.jar",
            "file": "cache/app-1.0.jar",
            "dependencies": ["org.example:core:1.0"],
        },
        "org.example:core:1.0": {
            "url": f"{repo}/org/example/core/1.0/core-1.0.jar",
            "file": "cache/core-1.0.jar",
        },
        "org.example:plugin-a:1.0": {
            "url": f"{repo}/org/example/plugin-a/1.0/plugin-a-1.0.jar",
            "file": "cache/plugin-a-1.0.jar",
            "dependencies": ["org.example:shared:1.0", "org.example:core:1.0"],
        },
        "org.example:plugin-b:1.0": {
            "url": f"{repo}/org/example/plugin-b/1.0/plugin-b-1.0.jar",
            "file": "cache/plugin-b-1.0.jar",
            "dependencies": ["org.example:shared:1.0"],
        },
        "org.example:shared:1.0": {
            "url": f"{repo}/org/example/shared/1.0/shared-1.0.jar",
            "file": "cache/shared-1.0.jar",
        },
    }
    for coordinate, module in modules.items():
        name: str = coordinate.split(":")[1]
        write_artifact(tmp_path / str(module["file"]), f"jar bytes of {name}".encode("utf-8"))

    doc: dict[str, object] = {
        "roots": ["org.example:app:1.0", "org.example:plugin-a:1.0", "org.example:plugin-b:1.0"],
        "modules": modules,
    }
    path: pathlib.Path = tmp_path / "resolution.json"
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path


@pytest.fixture
def resolution(resolution_path: pathlib.Path) -> Resolution:
    return load_resolution(resolution_path)
