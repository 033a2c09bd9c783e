"""scan command: report unnecessary_indexing findings."""

import json

from ..utils import colorize
from ._helpers import collect_diagnostics


def cmd_scan(args) -> int:
    """Run the rule over --path. Returns 1 when there are findings."""
    diagnostics = collect_diagnostics(args)

    if getattr(args, "json", False):
        payload = {"count": len(diagnostics), "findings": [d.to_dict() for d in diagnostics]}
        print(json.dumps(payload, indent=2))
        return 1 if diagnostics else 0

    if not diagnostics:
        print(colorize("No findings.", "green"))
        return 0

    top = getattr(args, "top", 20)
    print(colorize(f"\nunnecessary_indexing: {len(diagnostics)}\n", "bold"))
    for diagnostic in diagnostics[:top]:
        _print_diagnostic(diagnostic)
    if len(diagnostics) > top:
        print(f"\n  ... and {len(diagnostics) - top} more")
    print(colorize("\n  Run `peeklint fix --dry-run` to preview the rewrites.", "dim"))
    return 1


def _print_diagnostic(diagnostic) -> None:
    location = f"{diagnostic.file}:{diagnostic.span.line}:{diagnostic.span.column}"
    print(f"{colorize(location, 'cyan')}  "
          f"{colorize(str(diagnostic.severity), 'yellow')}[{diagnostic.rule}] {diagnostic.message}")
    if diagnostic.edits:
        condition = diagnostic.edits[0].replacement
        print(colorize(f"    help: try `if {condition}`", "dim"))
