"""Ghost-dependency detection.

A run has four phases:
1. Collect  - analyze files on a bounded thread pool, keep admitted specifiers
2. Resolve  - one declared set (flat mode) or one per file (monorepo mode)
3. Diff     - flag specifiers whose package name is not declared
4. Emit     - sorted report, optionally exported to ghost-dependencies.json

Workers only return per-file results; the usage map is folded on the calling
thread, so no shared structure is mutated concurrently.
"""
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Union

from ..config import CheckConfig
from ..utils.export import GhostDependencyMap, export_ghost_deps, sort_ghost_dep_map
from ..utils.logger import setup_logging
from .manifest import ManifestCatalog, applicable_manifests, discover_manifests, load_declared
from .source_analyzer import SourceAnalyzer
from .specifiers import build_exclude_pattern, is_admitted, normalize

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
ProgressCallback = Callable[[int, int], None]

# Specifier -> files referencing it, in first-seen order without duplicates
UsageMap = Dict[str, List[str]]


@dataclass
class CollectResult:
    """Admitted specifiers per analyzed file plus the folded usage map."""
    per_file: Dict[str, Set[str]]
    usage: UsageMap


class GhostDependencyDetector:
    """Finds packages referenced in source files but missing from manifests."""

    def __init__(self, config: Optional[CheckConfig] = None,
                 analyzer: Optional[SourceAnalyzer] = None,
                 progress: Optional[ProgressCallback] = None):
        """Initialize detector for one run.

        Args:
            config: Run configuration (defaults when None)
            analyzer: Source analyzer (one honoring config.encoding when None)
            progress: Called as progress(done, total) after each analyzed file
        """
        self.config = config or CheckConfig()
        self.analyzer = analyzer or SourceAnalyzer(self.config.encoding)
        self.progress = progress
        self.exclude_pattern: Optional[re.Pattern] = build_exclude_pattern(self.config.exclude_alias)

    # ------------------------------------------------------------------
    # Phase 1: Collect
    # ------------------------------------------------------------------

    def admitted_specifiers(self, raw_specifiers: Iterable[str]) -> Set[str]:
        return {raw for raw in raw_specifiers if is_admitted(raw, self.exclude_pattern)}

    def collect(self, files: Sequence[PathLike]) -> CollectResult:
        """Analyze files concurrently and fold the results.

        Files with unsupported extensions are skipped. Results are folded in
        input order, so the usage map is identical across runs.

        Args:
            files: Source files to analyze

        Returns:
            Per-file admitted specifiers and the usage map
        """
        total = len(files)
        per_file: Dict[str, Set[str]] = {}
        usage: UsageMap = {}

        self._report_progress(0, total)
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            # map() yields in submission order; at most max_workers files are in flight
            results = executor.map(self.analyzer.analyze, files)

            for done, (file_path, raw_specifiers) in enumerate(zip(files, results), start=1):
                if raw_specifiers is not None:
                    key = str(file_path)
                    admitted = self.admitted_specifiers(raw_specifiers)
                    per_file[key] = per_file.get(key, set()) | admitted
                    for raw in sorted(admitted):
                        sites = usage.setdefault(raw, [])
                        if key not in sites:
                            sites.append(key)
                self._report_progress(done, total)

        logger.debug("Referenced packages: %s", sorted(usage))
        return CollectResult(per_file=per_file, usage=usage)

    def _report_progress(self, done: int, total: int):
        if self.progress is not None:
            self.progress(done, total)

    # ------------------------------------------------------------------
    # Phases 2-4: Resolve, Diff, Emit
    # ------------------------------------------------------------------

    def check(self, files: Sequence[PathLike],
              manifest_files: Iterable[PathLike]) -> GhostDependencyMap:
        """Flat mode: one manifest list governs every file.

        Args:
            files: Source files to analyze
            manifest_files: package.json files declaring the allowed packages

        Returns:
            Sorted report of undeclared specifiers and their usage sites

        Raises:
            ManifestError: If any manifest cannot be loaded
        """
        if not files:
            return {}

        collected = self.collect(files)
        declared = load_declared(manifest_files)

        ghosts = {
            raw: sites
            for raw, sites in collected.usage.items()
            if normalize(raw) not in declared
        }
        return sort_ghost_dep_map(ghosts)

    def check_monorepo(self, files: Sequence[PathLike],
                       root_dir: PathLike) -> GhostDependencyMap:
        """Monorepo mode: each file is governed by every manifest above it.

        A file's declared set is the union of all manifests whose directory
        contains it, plus whatever config.special_dep_functions return for it.
        A specifier is flagged if any file leaves it undeclared, and is then
        reported with every file that references it.

        Args:
            files: Source files to analyze
            root_dir: Directory searched for package.json files

        Returns:
            Sorted report of undeclared specifiers and their usage sites

        Raises:
            ManifestError: If any applicable manifest cannot be loaded
        """
        if not files:
            return {}

        collected = self.collect(files)
        manifest_paths = discover_manifests(root_dir)
        catalog = ManifestCatalog()
        flagged: Set[str] = set()

        for file_key, admitted in collected.per_file.items():
            governing = applicable_manifests(file_key, manifest_paths,
                                             self.config.special_dep_functions)
            declared = catalog.declared_for(governing)
            logger.debug("%s is governed by %s", file_key, [str(p) for p in governing])

            flagged.update(raw for raw in admitted if normalize(raw) not in declared)

        ghosts = {raw: collected.usage[raw] for raw in flagged}
        return sort_ghost_dep_map(ghosts)


def emit_report(report: GhostDependencyMap, config: CheckConfig) -> Optional[Path]:
    """Log the outcome and export the report when config.export is set.

    Returns:
        Path of the exported report, or None if nothing was written
    """
    if report:
        logger.info("Found %d possible ghost dependencies", len(report))
    if not config.export:
        return None
    return export_ghost_deps(report, config.output_dir)


def ghost_dep_check(files: Sequence[PathLike],
                    manifest_files: Iterable[PathLike],
                    config: Optional[CheckConfig] = None,
                    progress: Optional[ProgressCallback] = None) -> List[str]:
    """Check files against a fixed list of package.json files.

    Args:
        files: Absolute source file paths
        manifest_files: package.json paths declaring allowed packages
        config: Run configuration
        progress: Optional progress(done, total) callback

    Returns:
        Sorted ghost specifiers
    """
    config = config or CheckConfig()
    if not files:
        return []

    setup_logging(config.log_level)
    report = GhostDependencyDetector(config, progress=progress).check(files, manifest_files)
    emit_report(report, config)
    return list(report)


def ghost_dep_check_monorepo(files: Sequence[PathLike],
                             root_dir: PathLike,
                             config: Optional[CheckConfig] = None,
                             progress: Optional[ProgressCallback] = None) -> List[str]:
    """Check files against the package.json files that govern each of them.

    Args:
        files: Absolute source file paths
        root_dir: Directory searched for package.json files
        config: Run configuration
        progress: Optional progress(done, total) callback

    Returns:
        Sorted distinct ghost specifiers
    """
    config = config or CheckConfig()
    if not files:
        return []

    setup_logging(config.log_level)
    report = GhostDependencyDetector(config, progress=progress).check_monorepo(files, root_dir)
    emit_report(report, config)
    return list(report)
