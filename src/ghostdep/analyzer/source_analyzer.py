"""Per-file module specifier extraction.

Each supported dialect turns script text into a set of raw specifiers using
tree-sitter. When that fails for any reason the analyzer falls back to the
regex scanner, so a single broken file never aborts a run.
"""
import logging
import re
from pathlib import Path
from typing import Dict, Optional, Set, Tuple, Union

from .fallback import RegexSpecifierScanner
from .import_tracker import JSImportTracker
from .parser import LanguageParser

logger = logging.getLogger(__name__)


class Dialect:
    """A family of source files sharing one extraction strategy."""

    name = ''
    extensions: Tuple[str, ...] = ()

    def grammar_for(self, extension: str) -> str:
        raise NotImplementedError

    def scripts(self, content: str) -> Tuple[str, ...]:
        """Split file content into the script texts that should be parsed."""
        return (content,)

    def extract(self, content: str, extension: str) -> Set[str]:
        """Parse every script region and collect the specifiers it references.

        Raises:
            ParseError: If any script region has syntax errors
        """
        tracker = JSImportTracker()
        specifiers: Set[str] = set()

        for script in self.scripts(content):
            if not script.strip():
                continue
            parser = LanguageParser(self.grammar_for(extension))
            tree = parser.parse_source(script)
            specifiers |= tracker.collect_specifiers(tree.root_node)

        return specifiers


class ComponentDialect(Dialect):
    """Vue single-file components: only <script> blocks carry imports."""

    name = 'component'
    extensions = ('.vue',)

    # <script>, <script setup>, <script lang="ts"> ...; template/style are ignored
    SCRIPT_BLOCK_RE = re.compile(r'<script\b[^>]*>(.*?)</script\s*>', re.IGNORECASE | re.DOTALL)

    def grammar_for(self, extension: str) -> str:
        return 'tsx'

    def scripts(self, content: str) -> Tuple[str, ...]:
        return tuple(match.group(1) for match in self.SCRIPT_BLOCK_RE.finditer(content))


class TypedDialect(Dialect):
    name = 'typed'
    extensions = ('.ts', '.mts', '.cts', '.tsx')

    def grammar_for(self, extension: str) -> str:
        # Angle-bracket casts and JSX conflict, so .tsx needs its own grammar
        return 'tsx' if extension == '.tsx' else 'typescript'


class PlainDialect(Dialect):
    name = 'plain'
    extensions = ('.js', '.mjs', '.cjs', '.jsx')

    def grammar_for(self, extension: str) -> str:
        return 'javascript'


DIALECTS: Tuple[Dialect, ...] = (ComponentDialect(), TypedDialect(), PlainDialect())

SUPPORTED_EXTENSIONS: Dict[str, Dialect] = {
    extension: dialect for dialect in DIALECTS for extension in dialect.extensions
}


def dialect_for(file_path: Union[str, Path]) -> Optional[Dialect]:
    return SUPPORTED_EXTENSIONS.get(Path(file_path).suffix.lower())


class SourceAnalyzer:
    """Map one source file to the raw module specifiers it references."""

    def __init__(self, encoding: str = 'utf-8'):
        self.encoding = encoding
        self.fallback = RegexSpecifierScanner(encoding)

    def analyze(self, file_path: Union[str, Path]) -> Optional[Set[str]]:
        """Extract specifiers from a file.

        Args:
            file_path: Source file to analyze

        Returns:
            Set of raw specifiers (possibly empty) for supported extensions,
            or None when the extension is not supported
        """
        file_path = Path(file_path)
        extension = file_path.suffix.lower()
        dialect = dialect_for(file_path)

        if dialect is None:
            logger.warning("Unknown file type: %s (%s)", extension or '<none>', file_path)
            return None

        try:
            content = file_path.read_text(encoding=self.encoding)
            specifiers = dialect.extract(content, extension)
        except Exception as exc:
            # Any failure degrades to the regex scan
            logger.error("Error when processing file: %s", file_path)
            logger.error("%s: %s", type(exc).__name__, exc)
            return self.fallback.scan_file(file_path)

        logger.debug("In %s file %s found: %s", dialect.name, file_path, sorted(specifiers))
        return specifiers
