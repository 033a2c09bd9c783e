"""Rust frontend: tree-sitter parsing, lowering and the per-file driver."""

from peeklint.languages.rust.detect import (
    RuleOptions,
    analyze_source,
    detect_unnecessary_indexing,
)

__all__ = ["RuleOptions", "analyze_source", "detect_unnecessary_indexing"]
