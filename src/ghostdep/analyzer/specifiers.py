"""Classification and normalization of module specifiers.

Every function here is pure and total over str input.
"""
import re
from enum import Enum
from typing import Iterable, Optional


class SpecifierKind(Enum):
    BUILTIN = "builtin"
    ABSOLUTE = "absolute"
    RELATIVE = "relative"
    NUMERIC = "numeric"
    CANDIDATE = "candidate"


# Node.js module.builtinModules
NODE_BUILTINS = frozenset([
    '_http_agent', '_http_client', '_http_common', '_http_incoming',
    '_http_outgoing', '_http_server', '_stream_duplex', '_stream_passthrough',
    '_stream_readable', '_stream_transform', '_stream_wrap', '_stream_writable',
    '_tls_common', '_tls_wrap',
    'assert', 'assert/strict', 'async_hooks', 'buffer', 'child_process',
    'cluster', 'console', 'constants', 'crypto', 'dgram',
    'diagnostics_channel', 'dns', 'dns/promises', 'domain', 'events', 'fs',
    'fs/promises', 'http', 'http2', 'https', 'inspector',
    'inspector/promises', 'module', 'net', 'os', 'path', 'path/posix',
    'path/win32', 'perf_hooks', 'process', 'punycode', 'querystring',
    'readline', 'readline/promises', 'repl', 'stream', 'stream/consumers',
    'stream/promises', 'stream/web', 'string_decoder', 'sys', 'timers',
    'timers/promises', 'tls', 'trace_events', 'tty', 'url', 'util',
    'util/types', 'v8', 'vm', 'wasi', 'worker_threads', 'zlib',
])

# Loader chains such as 'style-loader!css-loader!' or '!!raw-loader!'
LOADER_PREFIX_RE = re.compile(r'^(?:[^!]*!+)+')
PACKAGE_NAME_RE = re.compile(r'^(?:@([^/]+)/)?([^/]+)')
ABSOLUTE_PATH_RE = re.compile(r'^(?:/|[A-Za-z]:[\\/])')
RELATIVE_PATH_RE = re.compile(r'^\.')
NUMERIC_RE = re.compile(r'^\d+$')


def strip_loaders(raw: str) -> str:
    """Remove a leading webpack-style loader chain from a specifier."""
    return LOADER_PREFIX_RE.sub('', raw, count=1)


def is_builtin_module(raw: str) -> bool:
    return raw.startswith('node:') or raw in NODE_BUILTINS


def is_absolute_path(raw: str) -> bool:
    return bool(ABSOLUTE_PATH_RE.match(raw))


def is_relative_path(raw: str) -> bool:
    return bool(RELATIVE_PATH_RE.match(raw))


def is_numeric(raw: str) -> bool:
    return bool(NUMERIC_RE.match(raw))


def classify(raw: str) -> SpecifierKind:
    """Decide what a raw specifier refers to.

    Loader prefixes are stripped first, so 'style-loader!./x' is relative.

    Args:
        raw: Module specifier as written in source

    Returns:
        The specifier's kind; CANDIDATE means a possible third-party package
    """
    spec = strip_loaders(raw)

    if is_builtin_module(spec):
        return SpecifierKind.BUILTIN
    if is_absolute_path(spec):
        return SpecifierKind.ABSOLUTE
    if is_relative_path(spec):
        return SpecifierKind.RELATIVE
    if is_numeric(spec):
        return SpecifierKind.NUMERIC
    return SpecifierKind.CANDIDATE


def normalize(raw: str) -> str:
    """Reduce a specifier to its package name.

    '@scope/pkg/sub/path' -> '@scope/pkg', 'lodash/debounce' -> 'lodash'.
    """
    spec = strip_loaders(raw)
    match = PACKAGE_NAME_RE.match(spec)
    return match.group(0) if match else spec


def is_valid_third_party_pkg(raw: str) -> bool:
    if not raw or not strip_loaders(raw):
        return False
    return classify(raw) is SpecifierKind.CANDIDATE


def build_exclude_pattern(aliases: Iterable[str]) -> Optional[re.Pattern]:
    """Compile alias roots into one anchored alternation.

    An alias only matches as a whole segment: '@' excludes '@/views/a' but
    not '@vue/shared', and 'js' excludes 'js/util' but not 'jsdom'.

    Args:
        aliases: Alias prefixes such as '@', '~' or '@components'

    Returns:
        Compiled pattern, or None when there is nothing to exclude
    """
    cleaned = [alias.rstrip('/') for alias in aliases if alias and alias.rstrip('/')]
    if not cleaned:
        return None

    # Longest first so '@components' is tried before '@'
    ordered = sorted(set(cleaned), key=len, reverse=True)
    alternation = '|'.join(re.escape(alias) for alias in ordered)
    return re.compile(rf'^(?:{alternation})(?:/|$)')


def is_admitted(raw: str, exclude_pattern: Optional[re.Pattern] = None) -> bool:
    """Gate a raw specifier into the usage map."""
    if not is_valid_third_party_pkg(raw):
        return False
    if exclude_pattern is not None and exclude_pattern.match(strip_loaders(raw)):
        return False
    return True
