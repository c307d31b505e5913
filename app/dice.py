"""
Dice notation: parse "XdY", "XdY+Z" or "XdY-Z" and roll it.
"""

import random
import re
from dataclasses import dataclass

_DICE_RE = re.compile(r"^(\d+)d(\d+)(?:([+-])(\d+))?$")


@dataclass(frozen=True)
class DiceParams:
    count: int
    sides: int
    modifier: int = 0


@dataclass(frozen=True)
class RollResult:
    rolls: list[int]
    total: int
    notation: str


def parse_dice_notation(notation: str) -> DiceParams:
    """Raises ValueError for anything that is not valid notation."""
    match = _DICE_RE.match((notation or "").strip())
    if not match:
        raise ValueError(f"Invalid dice notation: {notation}")

    count = int(match.group(1))
    sides = int(match.group(2))
    modifier = 0
    if match.group(3) and match.group(4):
        modifier = int(match.group(4))
        if match.group(3) == "-":
            modifier = -modifier

    if count <= 0 or sides <= 0:
        raise ValueError("Dice count and sides must be positive numbers")
    return DiceParams(count=count, sides=sides, modifier=modifier)


def roll_die(sides: int, rng: random.Random | None = None) -> int:
    return (rng or random).randint(1, sides)


def roll(notation: str, rng: random.Random | None = None) -> RollResult:
    params = parse_dice_notation(notation)
    rolls = [roll_die(params.sides, rng) for _ in range(params.count)]
    return RollResult(rolls=rolls, total=sum(rolls) + params.modifier, notation=notation)
