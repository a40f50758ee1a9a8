"""Regex specifier scanner used when structured parsing fails.

It has the same contract as the tree-sitter path (text in, set of specifiers
out) and never raises. It cannot tell code from comments or strings, and it
misses imports the patterns do not anticipate.
"""
import logging
import re
from pathlib import Path
from typing import Set, Union

logger = logging.getLogger(__name__)

# import x from 'm', import { a,\n b } from "m", import type T from 'm'
IMPORT_FROM_RE = re.compile(r'''\bimport\s+[^'";]*?\s*from\s*['"]([^'"\n]+)['"]''')
REQUIRE_RE = re.compile(r'''\brequire\(\s*['"]([^'"\n]+)['"]\s*\)''')
DYNAMIC_IMPORT_RE = re.compile(r'''\bimport\(\s*['"]([^'"\n]+)['"]\s*\)''')

PATTERNS = (IMPORT_FROM_RE, REQUIRE_RE, DYNAMIC_IMPORT_RE)


class RegexSpecifierScanner:
    """Extract module specifiers from raw text with three independent patterns."""

    def __init__(self, encoding: str = 'utf-8'):
        self.encoding = encoding

    def scan(self, content: str) -> Set[str]:
        specifiers: Set[str] = set()
        for pattern in PATTERNS:
            specifiers.update(match.group(1) for match in pattern.finditer(content))
        return specifiers

    def scan_file(self, file_path: Union[str, Path]) -> Set[str]:
        """Read a file and scan it.

        Undecodable bytes are replaced rather than rejected. Any read failure
        is logged and yields an empty set.

        Args:
            file_path: Source file to scan

        Returns:
            Specifiers matched by any pattern
        """
        file_path = Path(file_path)
        try:
            content = file_path.read_text(encoding=self.encoding, errors='replace')
        except (OSError, LookupError) as exc:
            logger.error("Error reading file %s: %s", file_path, exc)
            return set()

        specifiers = self.scan(content)
        logger.debug("Fallback scan of %s found: %s", file_path, sorted(specifiers))
        return specifiers
