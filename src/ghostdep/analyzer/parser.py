"""Tree-sitter parser for the JavaScript family of source dialects."""
from functools import lru_cache
from typing import Union

from tree_sitter import Language, Parser, Tree
import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript


class ParseError(Exception):
    """Raised when tree-sitter cannot produce an error-free tree."""


@lru_cache(maxsize=None)
def load_language(grammar: str) -> Language:
    """Load a grammar once per process.

    Language objects are immutable and shared across worker threads; parsers
    are not, so each LanguageParser owns its own.

    Args:
        grammar: One of 'javascript', 'typescript', 'tsx'

    Raises:
        ValueError: If the grammar is not supported
    """
    if grammar == 'javascript':
        return Language(tsjavascript.language())
    elif grammar == 'typescript':
        return Language(tstypescript.language_typescript())
    elif grammar == 'tsx':
        # TSX covers JSX + type annotations + decorators (used for .vue scripts)
        return Language(tstypescript.language_tsx())
    raise ValueError(f"Unsupported grammar: {grammar}")


class LanguageParser:
    """Single-grammar parser using the tree-sitter v0.22+ API."""

    def __init__(self, grammar: str):
        """Initialize parser for one grammar.

        Args:
            grammar: One of 'javascript', 'typescript', 'tsx'

        Raises:
            ValueError: If grammar is not supported
        """
        self.grammar = grammar
        self.parser = Parser(load_language(grammar))

    def parse_source(self, source_code: Union[str, bytes]) -> Tree:
        """Parse source text, refusing trees that contain syntax errors.

        tree-sitter always returns a tree, recovering with ERROR and MISSING
        nodes. A recovered tree may hide or invent imports, so it is treated
        as a failed parse.

        Args:
            source_code: Script text

        Returns:
            Parsed Tree

        Raises:
            ParseError: If the tree contains ERROR or MISSING nodes
        """
        if isinstance(source_code, str):
            source_code = source_code.encode('utf-8')

        tree = self.parser.parse(source_code)
        if tree.root_node.has_error:
            raise ParseError(f"{self.grammar} syntax error near {_first_error_position(tree)}")
        return tree


def _first_error_position(tree: Tree) -> str:
    stack = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.type == 'ERROR' or node.is_missing:
            row, column = node.start_point
            return f"line {row + 1}, column {column + 1}"
        if node.has_error:
            stack.extend(reversed(node.children))
    return "unknown position"
