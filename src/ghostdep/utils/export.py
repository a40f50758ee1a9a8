"""Ghost-dependency report export."""
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

logger = logging.getLogger(__name__)

REPORT_FILENAME = 'ghost-dependencies.json'

GhostDependencyMap = Dict[str, List[str]]


def sort_ghost_dep_map(ghost_dep_map: GhostDependencyMap) -> GhostDependencyMap:
    """Sort by specifier, and sort each usage list."""
    return {key: sorted(ghost_dep_map[key]) for key in sorted(ghost_dep_map)}


def format_ghost_dep_map(ghost_dep_map: GhostDependencyMap) -> str:
    return json.dumps(sort_ghost_dep_map(ghost_dep_map), indent=2, ensure_ascii=False)


def export_ghost_deps(ghost_dep_map: GhostDependencyMap,
                      output_dir: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """Write the report to ghost-dependencies.json.

    An existing report is overwritten in full. Nothing is written for an
    empty report.

    Args:
        ghost_dep_map: Specifier -> files referencing it
        output_dir: Target directory (current working directory when None)

    Returns:
        Path of the written file, or None if nothing was written
    """
    if not ghost_dep_map:
        return None

    output_path = Path(output_dir or Path.cwd()) / REPORT_FILENAME

    # Write to temp file first for atomic operation
    temp_path = output_path.with_suffix('.tmp')
    with open(temp_path, 'w', encoding='utf-8') as f:
        f.write(format_ghost_dep_map(ghost_dep_map))
        f.write('\n')
    temp_path.replace(output_path)

    logger.info("Ghost dependencies saved to: %s", output_path)
    return output_path
