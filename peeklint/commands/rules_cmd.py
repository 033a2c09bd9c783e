"""rules command: list available rules."""

import textwrap

from ..rules import RULES
from ..utils import colorize


def cmd_rules(args) -> int:
    for rule in RULES.values():
        print(colorize(f"\n  {rule.name}", "bold"))
        for line in textwrap.wrap(rule.description, width=72):
            print(colorize(f"    {line}", "dim"))
    print()
    return 0
