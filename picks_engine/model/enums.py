"""
Shared enumerations for picks, cards and scoring.
"""

from enum import Enum
from typing import Optional


class Choice(Enum):
    """A user's answer to a slate pick."""
    A = "A"
    B = "B"
    PASS = "PASS"

    @classmethod
    def parse(cls, value) -> Optional["Choice"]:
        """Accept a Choice, 'A'/'B'/'PASS' (any case) or None."""
        if value is None or isinstance(value, Choice):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


class PickStatus(Enum):
    """Lifecycle status of a single user pick."""
    UNSELECTED = "unselected"
    SELECTED = "selected"
    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    PUSH = "push"
    PASSED = "passed"

    @property
    def is_terminal(self) -> bool:
        return self in (PickStatus.WON, PickStatus.LOST, PickStatus.PUSH, PickStatus.PASSED)


class ScoringMode(Enum):
    """Classic and Competitive differ only in the lock-incorrect penalty."""
    CLASSIC = "classic"
    COMPETITIVE = "competitive"

    @classmethod
    def parse(cls, value, default: "ScoringMode" = None) -> "ScoringMode":
        if isinstance(value, ScoringMode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return default if default is not None else cls.CLASSIC


class Market(Enum):
    SPREAD = "spread"
    TOTAL = "total"
    MONEYLINE = "moneyline"
    PROP = "prop"


class CardState(Enum):
    EDITABLE = "editable"
    SUBMITTED = "submitted"
    GRADED = "graded"
