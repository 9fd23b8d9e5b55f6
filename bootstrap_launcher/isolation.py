"""Isolation targets and dependency partitioning.

An isolation target names a set of modules the launcher loads in their own
classloader. Targets are processed in the order they were given: a URL claimed
by an earlier target is never reported by a later one.
"""

from dataclasses import dataclass, field
import pathlib
import re
from typing import Callable

from bootstrap_launcher.errors import MalformedIsolation
from bootstrap_launcher.resolution import Resolution, fetch as fetch_files


@dataclass(frozen=True, slots=True)
class IsolationTarget:
    """A named classloader scope.

    :ivar name: Target name, used in archive entry names.
    :ivar modules: Module ids (``org:name[:version]``) assigned to the target.
    """

    name: str
    modules: tuple[str, ...] = ()


@dataclass(slots=True)
class IsolationGroup:
    """What one isolation target contributes to the launcher.

    :ivar target: The target.
    :ivar urls: URLs first claimed by this target (thin mode).
    :ivar files: Local files for the target's whole subset (standalone mode).
        These are the paths returned by ``fetch``, not :class:`~bootstrap_launcher.resolution.Artifact`
        records; only the files themselves are embedded and referenced.
    """

    target: IsolationTarget
    urls: list[str] = field(default_factory=list)
    files: list[pathlib.Path] = field(default_factory=list)


_TARGET_NAME_RE: re.Pattern[str] = re.compile(r"^[A-Za-z0-9_.\-]+$")


def any_isolated_dep(targets: list[IsolationTarget]) -> bool:
    """Return whether any target has at least one module assigned.

    :param targets: Isolation targets.
    :returns: ``True`` if isolation metadata should be written.
    """

    return any(len(t.modules) > 0 for t in targets)


def partition(
    targets: list[IsolationTarget],
    resolution: Resolution,
    *,
    standalone: bool,
    fetch: Callable[[Resolution], list[pathlib.Path]] | None = None,
) -> dict[str, IsolationGroup]:
    """Split resolved artifacts into per-target groups.

    Thin mode reports, per target, the URLs of its subset that no earlier
    target already claimed. Standalone mode fetches the files of each target's
    whole subset; the claimed-URL filter does not apply to files.

    :param targets: Isolation targets, in precedence order.
    :param resolution: Full resolved graph.
    :param standalone: Whether artifact files get embedded.
    :param fetch: Maps a subset to its local files (defaults to
        :func:`bootstrap_launcher.resolution.fetch`).
    :returns: Groups keyed by target name, in target order.
    """

    if fetch is None:
        fetch = fetch_files

    claimed: set[str] = set()
    groups: dict[str, IsolationGroup] = {}
    for target in targets:
        subset: Resolution = resolution.subset(target.modules)
        sub_urls: list[str] = subset.urls
        filtered: list[str] = [u for u in sub_urls if u not in claimed]

        if standalone is True:
            groups[target.name] = IsolationGroup(target=target, urls=[], files=fetch(subset))
        else:
            groups[target.name] = IsolationGroup(target=target, urls=filtered, files=[])

        claimed.update(filtered)

    return groups


def parse_isolated_specs(specs: list[str], extra_targets: list[str] | None = None) -> list[IsolationTarget]:
    """Parse ``TARGET:org:name[:version]`` specs into ordered targets.

    Targets appear in order of first mention. Names in ``extra_targets`` that
    no spec mentions are appended as targets without modules.

    :param specs: Isolation specs, as given on the command line.
    :param extra_targets: Additional target names.
    :returns: Isolation targets.
    :raises MalformedIsolation: If a spec or target name is malformed.
    """

    modules_by_target: dict[str, list[str]] = {}
    for spec in specs:
        target_name, sep, module_id = spec.partition(":")
        if sep == "" or len(target_name) == 0:
            raise MalformedIsolation(
                f"Invalid isolation spec {spec!r}; expected 'TARGET:org:name[:version]'."
            )
        _validate_target_name(target_name)

        parts: list[str] = module_id.split(":")
        if len(parts) not in (2, 3) or any(len(p) == 0 for p in parts):
            raise MalformedIsolation(
                f"Invalid module {module_id!r} in isolation spec {spec!r}; expected 'org:name[:version]'."
            )

        modules: list[str] = modules_by_target.setdefault(target_name, [])
        if module_id not in modules:
            modules.append(module_id)

    for name in extra_targets or []:
        _validate_target_name(name)
        modules_by_target.setdefault(name, [])

    return [IsolationTarget(name=n, modules=tuple(m)) for n, m in modules_by_target.items()]


def _validate_target_name(name: str) -> None:
    """Validate a target name for use inside archive entry names.

    :param name: Target name.
    :raises MalformedIsolation: If the name contains unsupported characters.
    """

    if _TARGET_NAME_RE.match(name) is None:
        raise MalformedIsolation(
            f"Invalid isolation target name {name!r}; use letters, digits, '.', '_' or '-'."
        )
