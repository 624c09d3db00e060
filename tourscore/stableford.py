"""Net Stableford scoring for a single hole."""

from __future__ import annotations

import math
from dataclasses import dataclass

HOLES_PER_ROUND = 18
MAX_HOLE_POINTS = 10


@dataclass(frozen=True)
class Strokes:
    value: int


@dataclass(frozen=True)
class Pickup:
    pass


@dataclass(frozen=True)
class Blank:
    pass


PICKUP = Pickup()
BLANK = Blank()

RawScore = Strokes | Pickup | Blank


def parse_raw_score(strokes: object, pickup: object = False) -> RawScore:
    """Turn a stored score cell into a RawScore.

    ``pickup`` wins over ``strokes``; a strokes value of ``"P"`` is also a
    pickup. Anything that is not a positive whole number is Blank.
    """
    if pickup is True or (isinstance(pickup, str) and pickup.strip().lower() in ("true", "p")):
        return PICKUP
    if strokes is None or isinstance(strokes, bool):
        return BLANK
    if isinstance(strokes, str):
        text = strokes.strip().upper()
        if not text:
            return BLANK
        if text == "P":
            return PICKUP
        try:
            value = float(text)
        except ValueError:
            return BLANK
    elif isinstance(strokes, (int, float)):
        value = float(strokes)
    else:
        return BLANK
    if not math.isfinite(value) or value <= 0:
        return BLANK
    return Strokes(int(value))


def is_recorded(raw: RawScore) -> bool:
    return not isinstance(raw, Blank)


def _whole(value: object, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return math.floor(number)


def shots_received(stroke_index: object, playing_handicap: object) -> int:
    hcp = max(0, _whole(playing_handicap))
    base, remainder = divmod(hcp, HOLES_PER_ROUND)
    index = _whole(stroke_index)
    extra = 1 if 0 < index <= remainder else 0
    return base + extra


def stableford_points(net_strokes: int, par: int) -> int:
    points = 2 + (par - net_strokes)
    return max(0, min(points, MAX_HOLE_POINTS))


def points_for_hole(raw: RawScore, par: object, stroke_index: object, playing_handicap: object) -> int:
    if not isinstance(raw, Strokes):
        return 0
    strokes = raw.value
    if isinstance(strokes, bool) or not isinstance(strokes, (int, float)):
        return 0
    if not math.isfinite(strokes) or strokes < 0:
        return 0
    hole_par = _whole(par)
    if hole_par <= 0:
        return 0
    net = math.floor(strokes) - shots_received(stroke_index, playing_handicap)
    return stableford_points(net, hole_par)
