"""Diagnostic records and the collector that the rules report into."""

from __future__ import annotations

from dataclasses import dataclass, field

from peeklint.engine.nodes import Span
from peeklint.enums import Applicability, Severity


@dataclass(frozen=True)
class Edit:
    """Replace the bytes covered by ``span`` with ``replacement``."""
    span: Span
    replacement: str

    def to_dict(self) -> dict:
        return {
            "start": self.span.start,
            "end": self.span.end,
            "line": self.span.line,
            "column": self.span.column,
            "replacement": self.replacement,
        }


@dataclass(frozen=True)
class Diagnostic:
    rule: str
    message: str
    span: Span
    edits: tuple[Edit, ...] = ()
    file: str = ""
    severity: Severity = Severity.WARNING
    applicability: Applicability = Applicability.MAYBE_INCORRECT

    @property
    def line(self) -> int:
        return self.span.line

    def to_dict(self) -> dict:
        return {
            "rule": self.rule,
            "file": self.file,
            "line": self.span.line,
            "column": self.span.column,
            "severity": str(self.severity),
            "message": self.message,
            "applicability": str(self.applicability),
            "edits": [edit.to_dict() for edit in self.edits],
        }


@dataclass
class DiagnosticCollector:
    """In-memory reporter: appends every report as a Diagnostic."""
    rule: str
    file: str = ""
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def report(
        self,
        span: Span,
        message: str,
        edits: list[tuple[Span, str]] | tuple[tuple[Span, str], ...] = (),
    ) -> Diagnostic:
        diagnostic = Diagnostic(
            rule=self.rule,
            message=message,
            span=span,
            edits=tuple(Edit(edit_span, text) for edit_span, text in edits),
            file=self.file,
        )
        self.diagnostics.append(diagnostic)
        return diagnostic


__all__ = ["Diagnostic", "DiagnosticCollector", "Edit"]
