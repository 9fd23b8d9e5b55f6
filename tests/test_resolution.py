import json
import pathlib

import pytest

from bootstrap_launcher.errors import FetchError, ResolutionError
from bootstrap_launcher.resolution import Resolution, fetch, load_resolution, parse_resolution


def _names(resolution: Resolution) -> list[str]:
    return [c.split(":")[1] for c in resolution.coordinates]


def test_traversal_is_depth_first_preorder(resolution: Resolution) -> None:
    assert _names(resolution) == ["app", "core", "plugin-a", "shared", "plugin-b"]
    assert resolution.urls == [a.url for a in resolution.artifacts]
    assert resolution.urls[0].endswith("/app-1.0.jar")


def test_subset_is_transitive_closure(resolution: Resolution) -> None:
    subset: Resolution = resolution.subset(("org.example:plugin-a:1.0",))
    assert _names(subset) == ["plugin-a", "shared", "core"]


def test_subset_matches_module_without_version(resolution: Resolution) -> None:
    subset: Resolution = resolution.subset(("org.example:plugin-b",))
    assert _names(subset) == ["plugin-b", "shared"]


def test_subset_ignores_unknown_modules(resolution: Resolution) -> None:
    assert resolution.subset(("org.example:missing:1.0",)).artifacts == []
    assert resolution.subset(()).urls == []


def test_relative_files_resolve_against_manifest(resolution_path: pathlib.Path, resolution: Resolution) -> None:
    files: list[pathlib.Path] = fetch(resolution.subset(("org.example:core:1.0",)))
    assert files == [resolution_path.parent / "cache" / "core-1.0.jar"]


def test_fetch_requires_local_file(tmp_path: pathlib.Path) -> None:
    doc: dict[str, object] = {"modules": {"org:a:1": {"url": "https://x/a.jar"}}}
    resolution: Resolution = parse_resolution(doc, base_dir=tmp_path)
    assert resolution.urls == ["https://x/a.jar"]
    with pytest.raises(FetchError, match="No local file"):
        fetch(resolution)


def test_fetch_requires_existing_file(tmp_path: pathlib.Path) -> None:
    doc: dict[str, object] = {"modules": {"org:a:1": {"url": "https://x/a.jar", "file": "a.jar"}}}
    with pytest.raises(FetchError, match="does not exist"):
        fetch(parse_resolution(doc, base_dir=tmp_path))


def test_roots_default_to_every_module(tmp_path: pathlib.Path) -> None:
    doc: dict[str, object] = {
        "modules": {
            "org:a:1": {"url": "https://x/a.jar"},
            "org:b:1": {"url": "https://x/b.jar"},
        }
    }
    assert parse_resolution(doc, base_dir=tmp_path).urls == ["https://x/a.jar", "https://x/b.jar"]


def test_dependency_cycles_terminate(tmp_path: pathlib.Path) -> None:
    doc: dict[str, object] = {
        "roots": ["org:a:1"],
        "modules": {
            "org:a:1": {"url": "https://x/a.jar", "dependencies": ["org:b:1"]},
            "org:b:1": {"url": "https://x/b.jar", "dependencies": ["org:a:1"]},
        },
    }
    assert parse_resolution(doc, base_dir=tmp_path).urls == ["https://x/a.jar", "https://x/b.jar"]


@pytest.mark.parametrize(
    "doc, message",
    [
        ([], "JSON object"),
        ({"modules": []}, "keyed by coordinate"),
        ({"modules": {"org:a": {"url": "https://x/a.jar"}}}, "Invalid coordinate"),
        ({"modules": {"org:a:1": {}}}, "has no 'url'"),
        ({"modules": {"org:a:1": {"url": "https://x/a.jar", "dependencies": ["org:b:1"]}}}, "unknown module"),
        ({"roots": ["org:b:1"], "modules": {"org:a:1": {"url": "https://x/a.jar"}}}, "Unknown root"),
    ],
)
def test_schema_errors(tmp_path: pathlib.Path, doc: object, message: str) -> None:
    with pytest.raises(ResolutionError, match=message):
        parse_resolution(doc, base_dir=tmp_path)


def test_load_resolution_errors(tmp_path: pathlib.Path) -> None:
    with pytest.raises(ResolutionError, match="Cannot read"):
        load_resolution(tmp_path / "missing.json")

    bad: pathlib.Path = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ResolutionError, match="Invalid JSON"):
        load_resolution(bad)


def test_load_resolution_round_trips_file(tmp_path: pathlib.Path) -> None:
    path: pathlib.Path = tmp_path / "r.json"
    path.write_text(json.dumps({"modules": {"org:a:1": {"url": "https://x/a.jar"}}}), encoding="utf-8")
    assert load_resolution(path).roots == ("org:a:1",)
