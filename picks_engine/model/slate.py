"""
Slate data types: the fixed set of picks offered for one date.

Slates are built once per day (services.slate) and are read-only after
that. They round-trip through dicts so they can be cached as JSON.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from picks_engine.model.enums import Market
from picks_engine.utils.dates import parse_game_time


@dataclass(frozen=True)
class SlateOption:
    """One side of a pick (option A or B)."""
    label: str
    short: str = ""
    value: str = ""     # away, home, over, under

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "short": self.short, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SlateOption":
        return cls(
            label=data.get("label", ""),
            short=data.get("short", ""),
            value=data.get("value", ""),
        )


@dataclass(frozen=True)
class SlatePick:
    """An offered prediction tied to one game and one market."""
    pick_id: int
    sport: str
    game_id: Optional[str]
    market: Market
    line: Optional[float]
    option_a: SlateOption
    option_b: SlateOption
    game_time: Optional[str]        # ISO-8601, UTC
    home_team: str = ""
    away_team: str = ""
    market_detail: str = ""

    @property
    def start_time(self) -> Optional[datetime]:
        return parse_game_time(self.game_time)

    def is_locked(self, now: datetime) -> bool:
        """True once the game has started. Picks with no start time never lock."""
        start = self.start_time
        if start is None:
            return False
        return now >= start

    @property
    def matchup(self) -> str:
        return f"{self.away_team} @ {self.home_team}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pick_id": self.pick_id,
            "sport": self.sport,
            "game_id": self.game_id,
            "market": self.market.value,
            "line": self.line,
            "option_a": self.option_a.to_dict(),
            "option_b": self.option_b.to_dict(),
            "game_time": self.game_time,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "market_detail": self.market_detail,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SlatePick":
        line = data.get("line")
        return cls(
            pick_id=int(data["pick_id"]),
            sport=data.get("sport", ""),
            game_id=data.get("game_id"),
            market=Market(data.get("market", "spread")),
            line=float(line) if line is not None else None,
            option_a=SlateOption.from_dict(data.get("option_a") or {}),
            option_b=SlateOption.from_dict(data.get("option_b") or {}),
            game_time=data.get("game_time"),
            home_team=data.get("home_team", ""),
            away_team=data.get("away_team", ""),
            market_detail=data.get("market_detail", ""),
        )


@dataclass(frozen=True)
class Slate:
    slate_id: str
    date: str
    picks: Tuple[SlatePick, ...] = ()
    generated_at: Optional[str] = None
    source: str = "ESPN"

    def __len__(self) -> int:
        return len(self.picks)

    @property
    def sports(self) -> List[str]:
        """Distinct sports on the slate, in first-seen order."""
        seen: List[str] = []
        for pick in self.picks:
            if pick.sport not in seen:
                seen.append(pick.sport)
        return seen

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slate_id": self.slate_id,
            "date": self.date,
            "picks": [p.to_dict() for p in self.picks],
            "generated_at": self.generated_at,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Slate":
        return cls(
            slate_id=data["slate_id"],
            date=data["date"],
            picks=tuple(SlatePick.from_dict(p) for p in data.get("picks") or ()),
            generated_at=data.get("generated_at"),
            source=data.get("source", "ESPN"),
        )
