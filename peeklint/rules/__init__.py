"""Rule registry."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from peeklint.rules import unnecessary_indexing


@dataclass(frozen=True)
class RuleSpec:
    name: str
    description: str
    check: Callable


RULES: dict[str, RuleSpec] = {
    unnecessary_indexing.NAME: RuleSpec(
        unnecessary_indexing.NAME,
        unnecessary_indexing.DESCRIPTION,
        unnecessary_indexing.check,
    ),
}


__all__ = ["RULES", "RuleSpec"]
