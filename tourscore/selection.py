"""Round and score selection rules shared by the leaderboards."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from fractions import Fraction
from numbers import Real
from typing import Hashable, Mapping, Sequence


def round_half_up(value: Real) -> int:
    """Nearest integer with halves going toward +inf (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + Fraction(1, 2))


def ceil_half(value: int) -> int:
    return -(-value // 2)


def clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))


def clamp_count(value: object, minimum: int = 1, maximum: int = 99) -> int:
    try:
        number = math.floor(float(value))
    except (TypeError, ValueError, OverflowError):
        return minimum
    return clamp(number, minimum, maximum)


def pick_best_n(
    totals: Mapping[str, float | None],
    ordered_round_ids: Sequence[str],
    n: int,
    final_round_id: str | None = None,
    final_required: bool = False,
) -> set[str]:
    """Choose which rounds count toward a best-N tour total.

    Only rounds with a recorded total are candidates. When the final round is
    required and has a total it takes one of the N slots; otherwise every slot
    is filled from the remaining rounds. Ties go to the earlier round.
    """
    slots = clamp_count(n, 1, max(1, len(ordered_round_ids)))
    position = {round_id: idx for idx, round_id in enumerate(ordered_round_ids)}
    candidates = [
        round_id
        for round_id in ordered_round_ids
        if totals.get(round_id) is not None
    ]

    chosen: set[str] = set()
    if final_required and final_round_id and final_round_id in candidates:
        chosen.add(final_round_id)

    ranked = sorted(
        (round_id for round_id in candidates if round_id not in chosen),
        key=lambda round_id: (-totals[round_id], position[round_id]),
    )
    for round_id in ranked:
        if len(chosen) >= slots:
            break
        chosen.add(round_id)
    return chosen


@dataclass(frozen=True)
class TopKSelection:
    counted: tuple[Hashable, ...] = ()
    qualifying: tuple[Hashable, ...] = ()
    cutoff: int | None = None
    points: dict = field(default_factory=dict)

    @property
    def counted_total(self) -> int:
        return sum(self.points[key] for key in self.counted)


def top_k_with_ties(entries: Sequence[tuple[Hashable, int]], k: int) -> TopKSelection:
    """Rank positive entries and keep exactly ``k`` of them.

    ``entries`` are ``(key, points)`` pairs in table order, which breaks ties.
    Entries equal to the cutoff that miss out on a slot are returned as
    qualifying.
    """
    limit = clamp_count(k)
    positives = [(idx, key, pts) for idx, (key, pts) in enumerate(entries) if pts > 0]
    positives.sort(key=lambda item: (-item[2], item[0]))
    picked = positives[:limit]
    if not picked:
        return TopKSelection()

    cutoff = picked[-1][2]
    counted = tuple(key for _, key, _ in picked)
    qualifying = tuple(key for _, key, pts in positives[limit:] if pts == cutoff)
    return TopKSelection(
        counted=counted,
        qualifying=qualifying,
        cutoff=cutoff,
        points={key: pts for _, key, pts in positives},
    )
