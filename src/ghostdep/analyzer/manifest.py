"""package.json discovery, loading and per-file scoping."""
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Set, Union

from ..config import ManifestSource

logger = logging.getLogger(__name__)

MANIFEST_NAME = 'package.json'

# Directories holding installed packages (or VCS data), never project manifests
DEPENDENCY_STORE_DIRS = frozenset({
    'node_modules', 'bower_components', 'jspm_packages', '.git', '.hg', '.svn',
})

DECLARING_SECTIONS = ('dependencies', 'devDependencies')


class GhostDepError(Exception):
    """Base class for errors that abort a ghost-dependency run."""


class ManifestError(GhostDepError):
    """A manifest could not be read or parsed."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Cannot load manifest {self.path}: {reason}")


@dataclass(frozen=True)
class Manifest:
    path: Path
    declared: FrozenSet[str]

    @property
    def scope_root(self) -> Path:
        return self.path.parent


def _absolute(path: Union[str, Path]) -> Path:
    # Lexical only; symlinks are compared as written
    return Path(os.path.abspath(path))


def _is_under(file_path: Path, directory: Path) -> bool:
    try:
        file_path.relative_to(directory)
    except ValueError:
        return False
    return True


def discover_manifests(root_dir: Union[str, Path]) -> List[Path]:
    """Find every package.json under root_dir outside dependency stores.

    Args:
        root_dir: Directory to search recursively

    Returns:
        Absolute manifest paths, sorted
    """
    root_dir = _absolute(root_dir)
    manifests = []

    for current, dirnames, filenames in os.walk(root_dir):
        # Prune in place so os.walk never descends into node_modules
        dirnames[:] = [name for name in dirnames if name not in DEPENDENCY_STORE_DIRS]
        if MANIFEST_NAME in filenames:
            manifests.append(Path(current) / MANIFEST_NAME)

    manifests.sort()
    logger.debug("Discovered %d manifest(s) under %s", len(manifests), root_dir)
    return manifests


def load_manifest(path: Union[str, Path]) -> Manifest:
    """Read one package.json and collect its declared package names.

    Args:
        path: Manifest path

    Returns:
        Loaded manifest

    Raises:
        ManifestError: If the file is unreadable, not JSON, or not a JSON object
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as exc:
        raise ManifestError(path, f"unreadable ({exc.strerror or exc})") from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ManifestError(path, f"malformed JSON ({exc})") from exc

    if not isinstance(data, dict):
        raise ManifestError(path, f"expected a JSON object, got {type(data).__name__}")

    declared: Set[str] = set()
    for section in DECLARING_SECTIONS:
        entries = data.get(section) or {}
        if not isinstance(entries, dict):
            raise ManifestError(path, f"'{section}' must be an object")
        declared.update(entries.keys())

    return Manifest(path=path, declared=frozenset(declared))


def load_declared(manifest_paths: Iterable[Union[str, Path]]) -> Set[str]:
    """Union the declared package names of several manifests.

    Raises:
        ManifestError: On the first manifest that cannot be loaded
    """
    declared: Set[str] = set()
    for path in manifest_paths:
        declared |= load_manifest(path).declared

    logger.debug("Declared packages: %s", sorted(declared))
    return declared


def applicable_manifests(file_path: Union[str, Path],
                         manifest_paths: Iterable[Union[str, Path]],
                         sources: Iterable[ManifestSource] = ()) -> List[Path]:
    """Return every manifest governing a source file.

    Governance is by directory containment, not nearest-ancestor: a package
    file inside a workspace is governed by both its own package.json and the
    workspace root's. Extra manifest sources are consulted afterwards, in
    order.

    Args:
        file_path: Absolute source file path
        manifest_paths: Candidate manifests (e.g. from discover_manifests)
        sources: Callables returning extra manifest paths for a file

    Returns:
        Manifest paths without duplicates, first occurrence first
    """
    file_path = _absolute(file_path)
    result: List[Path] = []
    seen: Set[Path] = set()

    def add(path: Path):
        if path not in seen:
            seen.add(path)
            result.append(path)

    for manifest_path in manifest_paths:
        manifest_path = _absolute(manifest_path)
        if _is_under(file_path, manifest_path.parent):
            add(manifest_path)

    for source in sources:
        for extra in source(file_path):
            add(_absolute(extra))

    return result


class ManifestCatalog:
    """Loads each manifest at most once during a run."""

    def __init__(self):
        self._manifests: Dict[Path, Manifest] = {}

    def get(self, path: Union[str, Path]) -> Manifest:
        path = Path(path)
        manifest = self._manifests.get(path)
        if manifest is None:
            manifest = load_manifest(path)
            self._manifests[path] = manifest
        return manifest

    def declared_for(self, manifest_paths: Iterable[Union[str, Path]]) -> Set[str]:
        declared: Set[str] = set()
        for path in manifest_paths:
            declared |= self.get(path).declared
        return declared
