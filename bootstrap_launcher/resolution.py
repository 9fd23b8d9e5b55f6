"""Resolved dependency graphs.

Dependency resolution itself happens elsewhere. This module loads its result
from a small JSON document and exposes the handful of operations the launcher
builder needs:

- :meth:`Resolution.subset` narrows the graph to the transitive closure of some
  modules.
- :attr:`Resolution.artifacts` / :attr:`Resolution.urls` list what a graph
  resolves to, in a stable order.
- :func:`fetch` maps a graph to the local artifact files it points at.

The document looks like::

    {
      "roots": ["org:a:1.0"],
      "modules": {
        "org:a:1.0": {
          "url": "https://repo/org/a/1.0/a-1.0.jar",
          "file": "cache/a-1.0.jar",
          "dependencies": ["org:b:2.0"]
        }
      }
    }
"""

from dataclasses import dataclass
import json
import pathlib
from typing import Any

from bootstrap_launcher.errors import FetchError, ResolutionError


@dataclass(frozen=True, slots=True)
class Artifact:
    """One resolved dependency file.

    :ivar url: Remote URL of the artifact.
    :ivar local_file: Local copy of the artifact, if one was downloaded.
    """

    url: str
    local_file: pathlib.Path | None


@dataclass(frozen=True, slots=True)
class ResolvedModule:
    """A module of the resolved graph.

    :ivar coordinate: ``org:name:version`` coordinate.
    :ivar artifact: The module's artifact.
    :ivar dependencies: Coordinates of direct dependencies, in declaration order.
    """

    coordinate: str
    artifact: Artifact
    dependencies: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Resolution:
    """A resolved dependency graph rooted at some modules.

    :ivar roots: Coordinates the graph starts from.
    :ivar modules: Every known module, keyed by coordinate.
    """

    roots: tuple[str, ...]
    modules: dict[str, ResolvedModule]

    def subset(self, module_ids: tuple[str, ...] | list[str]) -> "Resolution":
        """Narrow the graph to the closure of ``module_ids``.

        A module id is either a full ``org:name:version`` coordinate or an
        ``org:name`` pair matching every version of that module. Ids that match
        nothing are ignored.

        :param module_ids: Module ids to start from.
        :returns: A resolution rooted at the matched modules.
        """

        roots: list[str] = []
        for module_id in module_ids:
            for coordinate in _match_module_id(module_id, self.modules):
                if coordinate not in roots:
                    roots.append(coordinate)
        return Resolution(roots=tuple(roots), modules=self.modules)

    @property
    def coordinates(self) -> list[str]:
        """Coordinates reachable from the roots (depth-first, pre-order)."""

        seen: set[str] = set()
        order: list[str] = []
        stack: list[str] = list(reversed(self.roots))
        while len(stack) > 0:
            coordinate: str = stack.pop()
            if coordinate in seen:
                continue
            seen.add(coordinate)
            order.append(coordinate)
            module: ResolvedModule = self.modules[coordinate]
            for dep in reversed(module.dependencies):
                if dep not in seen:
                    stack.append(dep)
        return order

    @property
    def artifacts(self) -> list[Artifact]:
        """Artifacts of every reachable module, in traversal order."""

        return [self.modules[c].artifact for c in self.coordinates]

    @property
    def urls(self) -> list[str]:
        """URLs of :attr:`artifacts`, in the same order."""

        return [a.url for a in self.artifacts]


def _match_module_id(module_id: str, modules: dict[str, ResolvedModule]) -> list[str]:
    """Find the coordinates a module id refers to.

    :param module_id: ``org:name`` or ``org:name:version``.
    :param modules: Known modules.
    :returns: Matching coordinates, in ``modules`` order.
    """

    if module_id in modules:
        return [module_id]

    parts: list[str] = module_id.split(":")
    if len(parts) != 2:
        return []

    prefix: str = f"{parts[0]}:{parts[1]}:"
    return [c for c in modules if c.startswith(prefix) is True]


def load_resolution(path: pathlib.Path) -> Resolution:
    """Load a resolution manifest from JSON.

    Relative ``file`` entries are resolved against the manifest's directory.

    :param path: JSON document path.
    :returns: Parsed resolution.
    :raises ResolutionError: If the document is missing or malformed.
    """

    try:
        text: str = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ResolutionError(f"Cannot read resolution manifest {path}: {e.strerror or e}") from e

    try:
        doc: Any = json.loads(text)
    except json.JSONDecodeError as e:
        raise ResolutionError(f"Invalid JSON in resolution manifest {path}: {e}") from e

    return parse_resolution(doc, base_dir=path.parent)


def parse_resolution(doc: Any, *, base_dir: pathlib.Path) -> Resolution:
    """Build a :class:`Resolution` from a decoded JSON document.

    :param doc: Decoded JSON.
    :param base_dir: Directory relative ``file`` entries are resolved against.
    :returns: Parsed resolution.
    :raises ResolutionError: If the document does not follow the schema.
    """

    if isinstance(doc, dict) is False:
        raise ResolutionError("Resolution manifest must be a JSON object.")

    raw_modules: Any = doc.get("modules", {})
    if isinstance(raw_modules, dict) is False:
        raise ResolutionError("'modules' must be an object keyed by coordinate.")

    modules: dict[str, ResolvedModule] = {}
    for coordinate, raw in raw_modules.items():
        modules[coordinate] = _parse_module(coordinate, raw, base_dir=base_dir)

    for module in modules.values():
        for dep in module.dependencies:
            if dep not in modules:
                raise ResolutionError(
                    f"Module {module.coordinate!r} depends on unknown module {dep!r}."
                )

    raw_roots: Any = doc.get("roots", list(modules))
    if isinstance(raw_roots, list) is False or not all(isinstance(r, str) for r in raw_roots):
        raise ResolutionError("'roots' must be a list of coordinates.")
    for root in raw_roots:
        if root not in modules:
            raise ResolutionError(f"Unknown root module {root!r}.")

    return Resolution(roots=tuple(raw_roots), modules=modules)


def _parse_module(coordinate: str, raw: Any, *, base_dir: pathlib.Path) -> ResolvedModule:
    """Parse one ``modules`` entry.

    :param coordinate: Module coordinate (the entry's key).
    :param raw: Decoded entry value.
    :param base_dir: Directory relative ``file`` entries are resolved against.
    :returns: Parsed module.
    :raises ResolutionError: If the entry is malformed.
    """

    if len(coordinate.split(":")) != 3:
        raise ResolutionError(f"Invalid coordinate {coordinate!r}; expected 'org:name:version'.")
    if isinstance(raw, dict) is False:
        raise ResolutionError(f"Module {coordinate!r} must be an object.")

    url: Any = raw.get("url")
    if isinstance(url, str) is False or len(url) == 0:
        raise ResolutionError(f"Module {coordinate!r} has no 'url'.")

    local_file: pathlib.Path | None = None
    raw_file: Any = raw.get("file")
    if raw_file is not None:
        if isinstance(raw_file, str) is False:
            raise ResolutionError(f"Module {coordinate!r} has a non-string 'file'.")
        local_file = base_dir / raw_file

    deps: Any = raw.get("dependencies", [])
    if isinstance(deps, list) is False or not all(isinstance(d, str) for d in deps):
        raise ResolutionError(f"Module {coordinate!r} has invalid 'dependencies'.")

    return ResolvedModule(
        coordinate=coordinate,
        artifact=Artifact(url=url, local_file=local_file),
        dependencies=tuple(deps),
    )


def fetch(resolution: Resolution) -> list[pathlib.Path]:
    """Return the local files backing every artifact of ``resolution``.

    :param resolution: Graph (or subset) to materialize.
    :returns: Local artifact files, in artifact order.
    :raises FetchError: If an artifact has no local file on disk.
    """

    files: list[pathlib.Path] = []
    for artifact in resolution.artifacts:
        if artifact.local_file is None:
            raise FetchError(f"No local file for {artifact.url}")
        if artifact.local_file.is_file() is False:
            raise FetchError(f"Local file for {artifact.url} does not exist: {artifact.local_file}")
        files.append(artifact.local_file)
    return files
