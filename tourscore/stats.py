from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass, field
from typing import Callable

from tourscore.aggregate import HOLE_NUMBERS, player_hole_points
from tourscore.models import TourSnapshot
from tourscore.rehandicap import is_card_complete
from tourscore.stableford import Strokes, shots_received

logger = logging.getLogger(__name__)

OUTCOME_BUCKETS = ("eagle_or_better", "birdie", "par", "bogey", "double_or_worse")


def empty_outcomes() -> dict[str, int]:
    return {bucket: 0 for bucket in OUTCOME_BUCKETS}


def bucket_for(diff: int) -> str:
    if diff <= -2:
        return "eagle_or_better"
    if diff == -1:
        return "birdie"
    if diff == 0:
        return "par"
    if diff == 1:
        return "bogey"
    return "double_or_worse"


@dataclass(frozen=True)
class RoundSummary:
    round_id: str
    course_id: str | None
    stableford_total: int
    holes_scored: int
    is_complete: bool


@dataclass(frozen=True)
class PlayerTourStats:
    player_id: str
    rounds: tuple[RoundSummary, ...]
    gross_outcomes: dict[str, int] = field(default_factory=empty_outcomes)
    net_outcomes: dict[str, int] = field(default_factory=empty_outcomes)
    pickups: int = 0

    @property
    def completed_totals(self) -> list[int]:
        return [summary.stableford_total for summary in self.rounds if summary.is_complete]

    @property
    def rounds_completed(self) -> int:
        return len(self.completed_totals)

    @property
    def best(self) -> int | None:
        return max(self.completed_totals, default=None)

    @property
    def worst(self) -> int | None:
        return min(self.completed_totals, default=None)

    @property
    def average(self) -> float | None:
        totals = self.completed_totals
        return statistics.fmean(totals) if totals else None

    @property
    def std_dev(self) -> float | None:
        totals = self.completed_totals
        return statistics.stdev(totals) if len(totals) >= 2 else None

    @property
    def holes_played(self) -> int:
        return sum(self.gross_outcomes.values())


def player_tour_stats(snapshot: TourSnapshot, player_id: str) -> PlayerTourStats:
    snapshot.player(player_id)
    summaries = []
    gross = empty_outcomes()
    net = empty_outcomes()
    pickups = 0

    for round_ in snapshot.ordered_rounds:
        if not snapshot.is_playing(round_.id, player_id):
            continue
        points = player_hole_points(snapshot, round_.id, player_id)
        summaries.append(
            RoundSummary(
                round_id=round_.id,
                course_id=round_.course_id,
                stableford_total=sum(points.values()),
                holes_scored=len(points),
                is_complete=is_card_complete(snapshot, round_.id, player_id),
            )
        )

        holes = snapshot.holes_for(round_.course_id, snapshot.tee_for(round_.id, player_id))
        ph = snapshot.playing_handicap(round_.id, player_id)
        for hole_number in points:
            raw = snapshot.raw_score(round_.id, player_id, hole_number)
            if not isinstance(raw, Strokes):
                pickups += 1
                gross["double_or_worse"] += 1
                net["double_or_worse"] += 1
                continue
            hole = holes[hole_number]
            gross[bucket_for(raw.value - hole.par)] += 1
            received = shots_received(hole.stroke_index, ph)
            net[bucket_for(raw.value - received - hole.par)] += 1

    return PlayerTourStats(
        player_id=player_id,
        rounds=tuple(summaries),
        gross_outcomes=gross,
        net_outcomes=net,
        pickups=pickups,
    )


@dataclass(frozen=True)
class EclecticRow:
    player_id: str
    label: str
    total: int
    best_by_hole: dict[int, int]
    holes_played: int


def eclectic(snapshot: TourSnapshot) -> list[EclecticRow]:
    """Best Stableford points on each hole across a player's complete rounds."""
    rows = []
    for player in snapshot.players:
        best: dict[int, int] = {}
        holes_played = 0
        for round_ in snapshot.ordered_rounds:
            if not snapshot.is_playing(round_.id, player.id):
                continue
            if not is_card_complete(snapshot, round_.id, player.id):
                continue
            points = player_hole_points(snapshot, round_.id, player.id)
            for hole_number in HOLE_NUMBERS:
                holes_played += 1
                value = points.get(hole_number, 0)
                best[hole_number] = max(best.get(hole_number, value), value)
        rows.append(
            EclecticRow(
                player_id=player.id,
                label=player.name,
                total=sum(best.values()),
                best_by_hole=best,
                holes_played=holes_played,
            )
        )
    rows.sort(key=lambda row: (-row.total, row.label.lower()))
    return rows


PAR_AVERAGE_COMPETITIONS = {
    "napoleon": 3,
    "big_george": 4,
    "grand_canyon": 5,
}

HOLE_SHARE_COMPETITIONS = {
    "bagel_man": lambda points: points == 0,
    "wizard": lambda points: points >= 4,
}


@dataclass(frozen=True)
class CompetitionRow:
    player_id: str
    label: str
    total: float
    holes_played: int
    tally: int


def _sort_rows(rows: list) -> list:
    rows.sort(key=lambda row: (-row.total, row.label.lower()))
    return rows


def _scored_holes(snapshot: TourSnapshot, player_id: str):
    """Yield ``(round, hole spec, points)`` for every recorded hole of the player's rounds."""
    for round_ in snapshot.ordered_rounds:
        if not snapshot.is_playing(round_.id, player_id):
            continue
        holes = snapshot.holes_for(round_.course_id, snapshot.tee_for(round_.id, player_id))
        for hole_number, points in player_hole_points(snapshot, round_.id, player_id).items():
            yield round_, holes[hole_number], points


def _all_rounds_complete(snapshot: TourSnapshot, player_id: str) -> bool:
    return all(
        is_card_complete(snapshot, round_.id, player_id)
        for round_ in snapshot.ordered_rounds
        if snapshot.is_playing(round_.id, player_id)
    )


def par_average(snapshot: TourSnapshot, par: int) -> list[CompetitionRow]:
    """Average Stableford points on holes of one par.

    Only players whose every round is complete take part.
    """
    rows = []
    for player in snapshot.players:
        if not _all_rounds_complete(snapshot, player.id):
            continue
        played = points_total = 0
        for _, hole, points in _scored_holes(snapshot, player.id):
            if hole.par != par:
                continue
            played += 1
            points_total += points
        average = points_total / played if played else 0
        rows.append(CompetitionRow(player.id, player.name, round(average, 2), played, points_total))
    return _sort_rows(rows)


def hole_share(snapshot: TourSnapshot, predicate: Callable[[int], bool]) -> list[CompetitionRow]:
    """Percentage of a player's recorded holes whose points match ``predicate``."""
    rows = []
    for player in snapshot.players:
        played = matched = 0
        for _, _, points in _scored_holes(snapshot, player.id):
            played += 1
            if predicate(points):
                matched += 1
        percent = round(matched * 100 / played, 2) if played else 0
        rows.append(CompetitionRow(player.id, player.name, percent, played, matched))
    return _sort_rows(rows)


@dataclass(frozen=True)
class H2ZLeg:
    leg_no: int
    start_round_no: int
    end_round_no: int


@dataclass(frozen=True)
class H2ZResult:
    player_id: str
    label: str
    final_score: int
    best_score: int
    best_len: int


def whole_tour_leg(snapshot: TourSnapshot) -> H2ZLeg:
    return H2ZLeg(leg_no=1, start_round_no=1, end_round_no=max(1, len(snapshot.rounds)))


def h2z(snapshot: TourSnapshot, player_id: str, leg: H2ZLeg) -> H2ZResult:
    """Running par-3 points total that goes back to zero on every 0-point par 3.

    Rounds without a round number take their position in tour order.
    """
    player = snapshot.player(player_id)
    low, high = sorted((leg.start_round_no, leg.end_round_no))
    running = run_len = best_score = best_len = 0
    for position, round_ in enumerate(snapshot.ordered_rounds, 1):
        round_no = round_.round_no if round_.round_no is not None else position
        if not low <= round_no <= high:
            continue
        if not snapshot.is_playing(round_.id, player_id):
            continue
        holes = snapshot.holes_for(round_.course_id, snapshot.tee_for(round_.id, player_id))
        points = player_hole_points(snapshot, round_.id, player_id)
        for hole_number in HOLE_NUMBERS:
            hole = holes.get(hole_number)
            if hole is None or hole.par != 3:
                continue
            hole_points = points.get(hole_number, 0)
            if hole_points == 0:
                running = run_len = 0
                continue
            running += hole_points
            run_len += 1
            if running > best_score:
                best_score = running
                best_len = run_len
    logger.debug("H2Z leg %s for %s: final %s best %s", leg.leg_no, player_id, running, best_score)
    return H2ZResult(player.id, player.name, running, best_score, best_len)


def h2z_standings(snapshot: TourSnapshot, leg: H2ZLeg) -> list[H2ZResult]:
    results = [h2z(snapshot, player.id, leg) for player in snapshot.players]
    results.sort(key=lambda row: (-row.best_score, -row.final_score, row.label.lower()))
    return results
