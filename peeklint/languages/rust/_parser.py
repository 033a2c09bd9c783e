"""Tree-sitter parser acquisition and scan-scoped parse cache for Rust."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

GRAMMAR = "rust"

# Exceptions that mean "tree-sitter parser could not be initialised".
PARSE_INIT_ERRORS: tuple[type[Exception], ...] = (
    ImportError, OSError, ValueError, RuntimeError, LookupError
)


@lru_cache(maxsize=1)
def get_parser():
    """Get the tree-sitter Rust parser."""
    from tree_sitter_language_pack import get_parser as _get_parser

    return _get_parser(GRAMMAR)


class ParseTreeCache:
    """Cache parsed tree-sitter trees during a scan.

    Key: filepath -> (source_bytes, parsed_tree)
    Stores source_bytes so callers can use them without re-reading.
    """

    def __init__(self) -> None:
        self._enabled: bool = False
        self._trees: dict[str, tuple[bytes, object]] = {}

    def enable(self) -> None:
        self._enabled = True
        self._trees = {}

    def disable(self) -> None:
        self._enabled = False
        self._trees = {}

    @property
    def enabled(self) -> bool:
        return self._enabled

    def get_or_parse(self, filepath: str, parser) -> tuple[bytes, object] | None:
        """Read file and parse, returning (source_bytes, tree). Uses cache if enabled."""
        if self._enabled and filepath in self._trees:
            return self._trees[filepath]

        try:
            source = Path(filepath).read_bytes()
        except OSError:
            return None

        tree = parser.parse(source)
        if self._enabled:
            self._trees[filepath] = (source, tree)
        return source, tree


_PARSE_CACHE = ParseTreeCache()


def enable_parse_cache() -> None:
    """Enable scan-scoped parse tree cache."""
    _PARSE_CACHE.enable()


def disable_parse_cache() -> None:
    """Disable parse tree cache and free memory."""
    _PARSE_CACHE.disable()


def parse_source(source: bytes):
    """Parse an in-memory buffer (not cached)."""
    return get_parser().parse(source)


__all__ = [
    "GRAMMAR",
    "PARSE_INIT_ERRORS",
    "ParseTreeCache",
    "disable_parse_cache",
    "enable_parse_cache",
    "get_parser",
    "parse_source",
]
