"""Apply diagnostic edits to source files."""

from __future__ import annotations

import difflib
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from peeklint.engine.diagnostics import Diagnostic, Edit
from peeklint.utils import resolve_path, safe_write_bytes

logger = logging.getLogger(__name__)


@dataclass
class FixResult:
    """Per-file outcome of a fix run plus counts of why diagnostics were skipped."""
    entries: list[dict] = field(default_factory=list)
    skip_reasons: dict[str, int] = field(default_factory=dict)

    def skip(self, reason: str, count: int = 1) -> None:
        self.skip_reasons[reason] = self.skip_reasons.get(reason, 0) + count


def apply_diagnostics(source: bytes, diagnostics: Iterable[Diagnostic]) -> tuple[bytes, int, int]:
    """Apply each diagnostic's edits as a unit.

    A diagnostic whose edits overlap an already accepted one is skipped whole,
    so nested findings never produce half a rewrite. Returns
    ``(new_source, applied, skipped)``.
    """
    accepted: list[Edit] = []
    applied = skipped = 0
    for diagnostic in sorted(diagnostics, key=lambda d: d.span.start):
        edits = diagnostic.edits
        if not edits:
            continue
        if any(edit.span.end > len(source) for edit in edits) or any(
            edit.span.overlaps(other.span) for edit in edits for other in accepted
        ):
            skipped += 1
            continue
        accepted.extend(edits)
        applied += 1

    out = source
    for edit in sorted(accepted, key=lambda e: e.span.start, reverse=True):
        out = out[:edit.span.start] + edit.replacement.encode("utf-8") + out[edit.span.end:]
    return out, applied, skipped


def unified_diff(filepath: str, before: str, after: str) -> str:
    return "".join(difflib.unified_diff(
        before.splitlines(keepends=True),
        after.splitlines(keepends=True),
        fromfile=f"a/{filepath}",
        tofile=f"b/{filepath}",
    ))


def _group_by_file(diagnostics: Iterable[Diagnostic]) -> dict[str, list[Diagnostic]]:
    grouped: dict[str, list[Diagnostic]] = {}
    for diagnostic in diagnostics:
        if not diagnostic.file:
            continue
        grouped.setdefault(diagnostic.file, []).append(diagnostic)
    return grouped


def _restore(snapshots: dict[str, bytes]) -> list[str]:
    """Put back the original bytes of files already rewritten; return the failures."""
    failed: list[str] = []
    for abs_path, original in snapshots.items():
        try:
            safe_write_bytes(abs_path, original)
        except OSError as exc:
            logger.debug("restore of %s failed: %s", abs_path, exc)
            failed.append(abs_path)
    return failed


def fix_files(diagnostics: Iterable[Diagnostic], *, dry_run: bool = False) -> FixResult:
    """Rewrite every file that has fixable diagnostics.

    Files are written as bytes, so content outside the edits is kept exactly.
    On a write failure the files already written in this run are restored
    and the error is re-raised.
    """
    result = FixResult()
    snapshots: dict[str, bytes] = {}
    for filepath, file_diagnostics in _group_by_file(diagnostics).items():
        abs_path = resolve_path(filepath)
        try:
            source = Path(abs_path).read_bytes()
        except OSError as exc:
            logger.debug("could not read %s: %s", filepath, exc)
            result.skip("unreadable", len(file_diagnostics))
            continue

        new_source, applied, skipped = apply_diagnostics(source, file_diagnostics)
        if skipped:
            result.skip("overlapping", skipped)
        if not applied:
            continue

        result.entries.append({
            "file": filepath,
            "fixed": applied,
            "diff": unified_diff(
                filepath,
                source.decode("utf-8", errors="replace"),
                new_source.decode("utf-8", errors="replace"),
            ),
        })
        if dry_run:
            continue
        try:
            safe_write_bytes(abs_path, new_source)
        except OSError:
            failed = _restore(snapshots)
            if failed:
                logger.warning("could not restore %s", ", ".join(failed))
            raise
        snapshots[abs_path] = source
    return result


__all__ = ["FixResult", "apply_diagnostics", "fix_files", "unified_diff"]
