"""Pre-authored shoot/pass scenarios for Split-Second Striker.

Positions are percentages of the attacking-third view: x left to right,
y from the goal line (0) outwards (100).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Action(StrEnum):
    SHOOT = "shoot"
    PASS = "pass"


@dataclass(frozen=True, slots=True)
class FieldPosition:
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class Scenario:
    player: FieldPosition
    defenders: tuple[FieldPosition, ...]
    teammates: tuple[FieldPosition, ...]
    correct_action: Action
    reasoning: str


def _p(x: float, y: float) -> FieldPosition:
    return FieldPosition(x=x, y=y)


DEFAULT_CATALOG: tuple[Scenario, ...] = (
    # Clear shots
    Scenario(_p(50, 70), (_p(30, 40), _p(70, 40)), (_p(20, 60),), Action.SHOOT, "Clear shot - defenders too far!"),
    Scenario(_p(45, 65), (_p(80, 50),), (_p(70, 70),), Action.SHOOT, "Wide open - take the shot!"),
    # Passing is better
    Scenario(_p(30, 70), (_p(35, 65), _p(50, 60)), (_p(60, 75),), Action.PASS, "Teammate wide open on right!"),
    Scenario(_p(70, 70), (_p(68, 65),), (_p(45, 70),), Action.PASS, "Defender blocking - pass to center!"),
    # Medium
    Scenario(_p(50, 75), (_p(50, 55),), (_p(30, 70),), Action.SHOOT, "Good angle despite defender!"),
    Scenario(_p(40, 65), (_p(42, 62), _p(58, 62)), (_p(70, 68),), Action.PASS, "Two defenders - pass right!"),
    Scenario(_p(55, 70), (_p(45, 50),), (_p(25, 65),), Action.SHOOT, "Central position - shoot!"),
    # Harder
    Scenario(_p(25, 68), (_p(28, 62),), (_p(50, 72), _p(70, 65)), Action.PASS, "Bad angle - pass to center!"),
    Scenario(_p(60, 68), (_p(40, 55), _p(75, 60)), (_p(35, 70),), Action.SHOOT, "Gap between defenders!"),
    Scenario(_p(48, 72), (_p(48, 58), _p(60, 65)), (_p(30, 68),), Action.PASS, "Crowded - pass left!"),
    Scenario(_p(52, 67), (_p(65, 55),), (_p(40, 65),), Action.SHOOT, "Clear lane to goal!"),
    Scenario(_p(35, 70), (_p(38, 64), _p(50, 58)), (_p(65, 72),), Action.PASS, "Teammate in better position!"),
)
