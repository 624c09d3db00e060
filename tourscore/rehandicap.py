"""Round-to-round playing handicap recalculation.

Round 1 starts every tour player on their starting handicap (SH). After each
round the rounded field average is compared with every complete scorecard and
a third of the difference, rounded half up, is applied to the player's
handicap, bounded to ``[ceil(SH / 2), SH + 3]``. Players who sat the round
out, or did not finish their card, carry their handicap forward unchanged.

The whole chain is recomputed from round 1 on every call because an edit to
any earlier round changes every handicap after it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Mapping, Sequence

from tourscore.aggregate import HOLE_NUMBERS, individual_round_total
from tourscore.errors import IncompleteHistoryError, UnknownEntityError
from tourscore.models import TourSnapshot
from tourscore.selection import ceil_half, clamp, round_half_up
from tourscore.stableford import is_recorded

logger = logging.getLogger(__name__)

MAX_ABOVE_START = 3


def handicap_bounds(starting_handicap: int) -> tuple[int, int]:
    return ceil_half(starting_handicap), starting_handicap + MAX_ABOVE_START


@dataclass(frozen=True)
class RoundStep:
    round_id: str
    avg_rounded: int | None
    scores: dict[str, int] = field(default_factory=dict)
    adjustments: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class RehandicapResult:
    enabled: bool
    round_ids: tuple[str, ...]
    handicaps: dict[tuple[str, str], int]
    steps: tuple[RoundStep, ...] = ()

    def for_round(self, round_id: str) -> dict[str, int]:
        return {pid: ph for (rid, pid), ph in self.handicaps.items() if rid == round_id}

    def assignments(self) -> list[dict]:
        return [
            {"round_id": round_id, "player_id": player_id, "playing_handicap": ph}
            for (round_id, player_id), ph in self.handicaps.items()
        ]


def rehandicap_round(
    scores: Mapping[str, int],
    handicaps: Mapping[str, int],
    starting_handicaps: Mapping[str, int],
) -> tuple[int | None, dict[str, int], dict[str, int]]:
    """Apply one round's results.

    ``scores`` holds the Stableford totals of the players who count toward
    the average. Returns ``(avg_rounded, next handicaps, adjustments)``; the
    next handicaps cover every player in ``handicaps``.
    """
    next_handicaps = dict(handicaps)
    if not scores:
        return None, next_handicaps, {}

    avg_rounded = round_half_up(Fraction(sum(scores.values()), len(scores)))
    adjustments: dict[str, int] = {}
    for player_id, score in scores.items():
        adjustment = round_half_up(Fraction(avg_rounded - score, 3))
        lower, upper = handicap_bounds(starting_handicaps[player_id])
        next_handicaps[player_id] = clamp(handicaps[player_id] + adjustment, lower, upper)
        adjustments[player_id] = adjustment
    return avg_rounded, next_handicaps, adjustments


def is_card_complete(snapshot: TourSnapshot, round_id: str, player_id: str) -> bool:
    return all(
        is_recorded(snapshot.raw_score(round_id, player_id, hole_number))
        for hole_number in HOLE_NUMBERS
    )


def check_history(snapshot: TourSnapshot) -> None:
    """Fail loudly on rows outside the tour's rounds or gaps in round numbering.

    Rows left behind by players who have since been removed from the tour
    are skipped by the fold; they are only logged.
    """
    known_players = {player.id for player in snapshot.players}
    stray_players = set()
    for entry in (*snapshot.round_players, *snapshot.scores):
        snapshot.round(entry.round_id)
        if entry.player_id not in known_players:
            stray_players.add(entry.player_id)
    if stray_players:
        logger.warning(
            "Tour %s has rows for players outside the tour, ignoring: %s",
            snapshot.tour.id,
            ", ".join(sorted(stray_players)),
        )

    numbers = sorted({r.round_no for r in snapshot.rounds if r.round_no is not None})
    if numbers and numbers != list(range(1, len(numbers) + 1)):
        missing = sorted(set(range(1, numbers[-1] + 1)) - set(numbers))
        raise IncompleteHistoryError(
            f"Tour {snapshot.tour.id} is missing rounds {missing} in its history"
        )


def recalculate_handicaps(snapshot: TourSnapshot) -> RehandicapResult:
    check_history(snapshot)
    round_ids = snapshot.ordered_round_ids
    starting = {player.id: player.starting_handicap for player in snapshot.players}

    if not snapshot.tour.rehandicapping_enabled:
        return RehandicapResult(
            enabled=False,
            round_ids=round_ids,
            handicaps={(rid, pid): sh for rid in round_ids for pid, sh in starting.items()},
        )

    handicaps: dict[tuple[str, str], int] = {}
    steps: list[RoundStep] = []
    current = dict(starting)
    for round_id in round_ids:
        for player_id, ph in current.items():
            handicaps[(round_id, player_id)] = ph

        scores = {
            player_id: individual_round_total(snapshot, round_id, player_id, current[player_id])
            for player_id in current
            if snapshot.is_playing(round_id, player_id) and is_card_complete(snapshot, round_id, player_id)
        }
        avg_rounded, current, adjustments = rehandicap_round(scores, current, starting)
        logger.debug("Round %s average %s over %d cards", round_id, avg_rounded, len(scores))
        steps.append(RoundStep(round_id, avg_rounded, scores, adjustments))

    return RehandicapResult(
        enabled=True,
        round_ids=round_ids,
        handicaps=handicaps,
        steps=tuple(steps),
    )


def apply_forward(
    handicaps: Mapping[tuple[str, str], int],
    ordered_round_ids: Sequence[str],
    player_id: str,
    from_round_id: str,
    playing_handicap: object,
) -> dict[tuple[str, str], int]:
    """Pin one player's handicap from ``from_round_id`` onward (inclusive)."""
    if from_round_id not in ordered_round_ids:
        raise UnknownEntityError("round", from_round_id)
    try:
        value = max(0, int(float(playing_handicap)))
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"Invalid playing handicap: {playing_handicap!r}") from None

    updated = dict(handicaps)
    start = list(ordered_round_ids).index(from_round_id)
    for round_id in ordered_round_ids[start:]:
        updated[(round_id, player_id)] = value
    return updated


def reset_forward(
    snapshot: TourSnapshot,
    handicaps: Mapping[tuple[str, str], int],
    player_id: str,
    from_round_id: str,
) -> dict[tuple[str, str], int]:
    player = snapshot.player(player_id)
    return apply_forward(
        handicaps,
        snapshot.ordered_round_ids,
        player.id,
        from_round_id,
        player.starting_handicap,
    )
