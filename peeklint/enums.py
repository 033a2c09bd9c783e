"""Canonical enums for diagnostic attributes.

StrEnum values compare equal to their string values
(Applicability.MAYBE_INCORRECT == "maybe-incorrect"), so JSON output and
config files can keep using raw strings.
"""

from __future__ import annotations

import enum


class Applicability(enum.StrEnum):
    MAYBE_INCORRECT = "maybe-incorrect"


class Severity(enum.StrEnum):
    WARNING = "warning"
