"""CLI entry point: argparse, subcommand routing."""

import argparse
import sys

from .utils import print_error, set_exclusions

USAGE_EXAMPLES = """
examples:
  peeklint scan --path src
  peeklint scan --json --exclude benches
  peeklint fix --dry-run
  peeklint fix --path src/parser.rs
  peeklint config set binding_name first_item
  peeklint config set ignore src/generated
  peeklint rules
"""


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="peeklint",
        description="peeklint — rewrite is_empty() guards plus [0] indexing into if-let .first()",
        epilog=USAGE_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--exclude", action="append", default=None, metavar="DIR",
                        help="Directory to exclude from scanning (repeatable)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_scan = sub.add_parser("scan", help="Report findings")
    p_scan.add_argument("--path", type=str, default=None)
    p_scan.add_argument("--json", action="store_true")
    p_scan.add_argument("--top", type=int, default=20, help="Max findings to print (default: 20)")

    p_fix = sub.add_parser("fix", help="Apply suggested rewrites")
    p_fix.add_argument("--path", type=str, default=None)
    p_fix.add_argument("--dry-run", action="store_true",
                       help="Show a diff instead of modifying files")

    p_config = sub.add_parser("config", help="Show or change .peeklint/config.json")
    config_sub = p_config.add_subparsers(dest="config_action")
    config_sub.add_parser("show", help="Show all config keys")
    p_set = config_sub.add_parser("set", help="Set a config key")
    p_set.add_argument("config_key")
    p_set.add_argument("config_value")
    p_unset = config_sub.add_parser("unset", help="Reset a config key to its default")
    p_unset.add_argument("config_key")

    sub.add_parser("rules", help="List available rules")

    return parser


def main(argv: list[str] | None = None):
    parser = create_parser()
    args = parser.parse_args(argv)

    from .config import load_config
    args._config = load_config()

    exclusions = list(args.exclude or []) + list(args._config.get("exclude") or [])
    if exclusions:
        set_exclusions(exclusions)

    # Lazy-load command handlers from commands/
    from .commands.config_cmd import cmd_config
    from .commands.fix_cmd import cmd_fix
    from .commands.rules_cmd import cmd_rules
    from .commands.scan import cmd_scan

    commands = {
        "scan": cmd_scan,
        "fix": cmd_fix,
        "config": cmd_config,
        "rules": cmd_rules,
    }

    try:
        code = commands[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(1)
    except OSError as exc:
        print_error(str(exc))
        sys.exit(2)
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
