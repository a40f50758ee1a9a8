from typing import Optional, Set

from tree_sitter import Node

# Callee names whose first string argument is a module specifier
MODULE_CALLEES = frozenset({'require', 'import'})


class JSImportTracker:
    def collect_specifiers(self, root_node: Node) -> Set[str]:
        """
        Walks a Tree-sitter tree and returns every module specifier it references.

        The walk builds and returns a fresh set; nothing outside it is mutated.
        """
        specifiers: Set[str] = set()

        # Stack for traversal
        stack = [root_node]

        while stack:
            node = stack.pop()

            # 1. ESM imports, including side-effect imports (import 'x')
            #    and TypeScript's import x = require('x')
            if node.type == 'import_statement':
                source_node = node.child_by_field_name('source')
                if source_node is None:
                    for child in node.named_children:
                        if child.type == 'import_require_clause':
                            source_node = child.child_by_field_name('source')
                            if source_node is None:
                                source_node = _first_string(child)
                            break
                self._add(specifiers, source_node)

            # 2. Re-exports (export { x } from 'x', export * from 'x')
            elif node.type == 'export_statement':
                self._add(specifiers, node.child_by_field_name('source'))

            # 3. require('x'), import('x')
            elif node.type == 'call_expression':
                function_node = node.child_by_field_name('function')
                args_node = node.child_by_field_name('arguments')

                if (function_node is not None and args_node is not None
                        and _callee_name(function_node) in MODULE_CALLEES
                        and args_node.named_child_count > 0):
                    self._add(specifiers, args_node.named_children[0])

            # Nested scopes (require inside functions, import() inside JSX) still count
            stack.extend(reversed(node.named_children))

        return specifiers

    @staticmethod
    def _add(specifiers: Set[str], node: Optional[Node]) -> None:
        value = string_literal_value(node)
        if value:
            specifiers.add(value)


def _callee_name(function_node: Node) -> str:
    # Dynamic import() parses as an 'import' keyword node, require as an identifier
    if function_node.type == 'import':
        return 'import'
    if function_node.type == 'identifier':
        return function_node.text.decode('utf-8')
    return ''


def _first_string(node: Node) -> Optional[Node]:
    for child in node.named_children:
        if child.type == 'string':
            return child
    return None


def string_literal_value(node: Optional[Node]) -> Optional[str]:
    """Return the value of a string literal node, or None if it is not one.

    Template literals count only when they contain no substitutions.
    """
    if node is None:
        return None

    if node.type == 'string':
        return node.text.decode('utf-8')[1:-1]

    if node.type == 'template_string':
        if any(child.type == 'template_substitution' for child in node.named_children):
            return None
        return node.text.decode('utf-8')[1:-1]

    return None
