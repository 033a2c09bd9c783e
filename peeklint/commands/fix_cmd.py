"""fix command: apply the suggested if-let rewrites."""

from ..engine.fixes import fix_files
from ..utils import colorize, warn
from ._helpers import collect_diagnostics


def cmd_fix(args) -> int:
    """Rewrite files in place, or print unified diffs with --dry-run."""
    dry_run = getattr(args, "dry_run", False)
    diagnostics = collect_diagnostics(args)
    if not diagnostics:
        print(colorize("No unnecessary_indexing findings.", "green"))
        return 0

    result = fix_files(diagnostics, dry_run=dry_run)
    verb = "Would fix" if dry_run else "Fixed"
    total = sum(entry["fixed"] for entry in result.entries)
    print(colorize(f"\n  {verb} {total} finding(s) in {len(result.entries)} file(s)\n", "bold"))

    for entry in result.entries:
        if dry_run:
            print(entry["diff"])
        else:
            print(f"  {entry['file']}: {entry['fixed']}")

    for reason, count in sorted(result.skip_reasons.items()):
        warn(f"skipped {count} ({reason}); rerun fix to pick them up")
    print()
    return 0
