"""Round and tour totals for the individual, pairs and teams leaderboards."""

from __future__ import annotations

from dataclasses import dataclass, field

from tourscore.models import (
    AllRounds,
    BestN,
    Group,
    Individual,
    LeaderboardKind,
    Pair,
    RoundRule,
    Team,
    TourSnapshot,
)
from tourscore.selection import TopKSelection, clamp_count, pick_best_n, top_k_with_ties
from tourscore.stableford import HOLES_PER_ROUND, is_recorded, points_for_hole

HOLE_NUMBERS = tuple(range(1, HOLES_PER_ROUND + 1))


def player_hole_points(
    snapshot: TourSnapshot,
    round_id: str,
    player_id: str,
    playing_handicap: int | None = None,
) -> dict[int, int]:
    """Points for every hole the player has a recorded score on.

    Blank holes are left out so callers can tell "no score" from a zero.
    Holes without a par/stroke index entry are left out as well.
    """
    round_ = snapshot.round(round_id)
    if not snapshot.is_playing(round_id, player_id):
        return {}
    holes = snapshot.holes_for(round_.course_id, snapshot.tee_for(round_id, player_id))
    if playing_handicap is None:
        playing_handicap = snapshot.playing_handicap(round_id, player_id)

    points: dict[int, int] = {}
    for hole_number in HOLE_NUMBERS:
        hole = holes.get(hole_number)
        if hole is None:
            continue
        raw = snapshot.raw_score(round_id, player_id, hole_number)
        if not is_recorded(raw):
            continue
        points[hole_number] = points_for_hole(raw, hole.par, hole.stroke_index, playing_handicap)
    return points


def individual_round_total(
    snapshot: TourSnapshot,
    round_id: str,
    player_id: str,
    playing_handicap: int | None = None,
) -> int | None:
    snapshot.round(round_id)
    snapshot.player(player_id)
    if not snapshot.is_playing(round_id, player_id):
        return None
    return sum(player_hole_points(snapshot, round_id, player_id, playing_handicap).values())


def individual_round_totals(snapshot: TourSnapshot, player_id: str) -> dict[str, int | None]:
    return {
        round_id: individual_round_total(snapshot, round_id, player_id)
        for round_id in snapshot.ordered_round_ids
    }


def tour_total(
    per_round: dict[str, int | None],
    ordered_round_ids: tuple[str, ...] | list[str],
    rule: RoundRule,
    final_round_id: str | None = None,
) -> tuple[int, frozenset[str]]:
    """Apply a round rule and return ``(total, counted round ids)``."""
    if isinstance(rule, BestN):
        counted = pick_best_n(per_round, ordered_round_ids, rule.n, final_round_id, rule.final_required)
    else:
        counted = {round_id for round_id in ordered_round_ids if per_round.get(round_id) is not None}
    total = sum(per_round[round_id] or 0 for round_id in counted)
    return total, frozenset(counted)


def pair_hole_points(snapshot: TourSnapshot, round_id: str, pair: Group) -> dict[int, int]:
    members = [player_hole_points(snapshot, round_id, player_id) for player_id in pair.member_ids]
    if not members:
        return {}
    return {
        hole_number: max(points.get(hole_number, 0) for points in members)
        for hole_number in HOLE_NUMBERS
    }


def pair_round_total(snapshot: TourSnapshot, round_id: str, pair: Group) -> int | None:
    snapshot.round(round_id)
    if not any(snapshot.is_playing(round_id, player_id) for player_id in pair.member_ids):
        return None
    return sum(pair_hole_points(snapshot, round_id, pair).values())


def pair_round_totals(snapshot: TourSnapshot, pair: Group) -> dict[str, int | None]:
    return {
        round_id: pair_round_total(snapshot, round_id, pair)
        for round_id in snapshot.ordered_round_ids
    }


@dataclass(frozen=True)
class TeamHole:
    hole_number: int
    total: int
    selection: TopKSelection
    zeros: tuple[str, ...]
    points: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PlayerContribution:
    player_id: str
    stableford_total: int = 0
    counted_points: int = 0
    qualifying_points: int = 0
    zero_count: int = 0

    @property
    def counted_contribution(self) -> int:
        return self.counted_points - self.zero_count

    @property
    def contribution(self) -> int:
        return self.counted_points + self.qualifying_points - self.zero_count


@dataclass(frozen=True)
class TeamRound:
    round_id: str
    team_id: str
    best_y: int
    holes: tuple[TeamHole, ...]
    contributions: dict[str, PlayerContribution]

    @property
    def total(self) -> int:
        return sum(hole.total for hole in self.holes)


def team_hole(hole_number: int, entries: list[tuple[str, int]], best_y: int) -> TeamHole:
    """Score one hole for a team: best Y positives, minus one per zero.

    ``entries`` holds ``(player_id, points)`` in table order for members with
    a recorded score.
    """
    zeros = tuple(player_id for player_id, points in entries if points == 0)
    selection = top_k_with_ties(entries, best_y)
    return TeamHole(
        hole_number=hole_number,
        total=selection.counted_total - len(zeros),
        selection=selection,
        zeros=zeros,
        points=dict(entries),
    )


def team_round(snapshot: TourSnapshot, round_id: str, team: Group, best_y: int | None = None) -> TeamRound:
    snapshot.round(round_id)
    y = clamp_count(snapshot.team_best_y if best_y is None else best_y)
    points_by_player = {
        player_id: player_hole_points(snapshot, round_id, player_id)
        for player_id in team.member_ids
    }

    holes = []
    for hole_number in HOLE_NUMBERS:
        entries = [
            (player_id, points_by_player[player_id][hole_number])
            for player_id in team.member_ids
            if hole_number in points_by_player[player_id]
        ]
        holes.append(team_hole(hole_number, entries, y))

    contributions = {}
    for player_id in team.member_ids:
        counted = qualifying = zeros = 0
        for hole in holes:
            if player_id in hole.zeros:
                zeros += 1
            elif player_id in hole.selection.counted:
                counted += hole.points[player_id]
            elif player_id in hole.selection.qualifying:
                qualifying += hole.points[player_id]
        contributions[player_id] = PlayerContribution(
            player_id=player_id,
            stableford_total=sum(points_by_player[player_id].values()),
            counted_points=counted,
            qualifying_points=qualifying,
            zero_count=zeros,
        )

    return TeamRound(
        round_id=round_id,
        team_id=team.id,
        best_y=y,
        holes=tuple(holes),
        contributions=contributions,
    )


def team_round_totals(snapshot: TourSnapshot, team: Group, best_y: int | None = None) -> dict[str, int]:
    return {
        round_id: team_round(snapshot, round_id, team, best_y).total
        for round_id in snapshot.ordered_round_ids
    }


@dataclass(frozen=True)
class LeaderboardRow:
    entry_id: str
    label: str
    total: int
    per_round: dict[str, int | None]
    counted_round_ids: frozenset[str]


@dataclass(frozen=True)
class Leaderboard:
    kind: str
    description: str
    round_ids: tuple[str, ...]
    final_round_id: str | None
    rows: list[LeaderboardRow]


def describe(kind: LeaderboardKind) -> str:
    if isinstance(kind, Team):
        y = clamp_count(kind.best_y.y)
        return f"Teams · Best {y} scores per hole, minus 1 for each zero · All rounds"
    title = "Individual Stableford" if isinstance(kind, Individual) else "Pairs Better Ball"
    rule = kind.rule
    if not isinstance(rule, BestN):
        return f"{title} · Total points across all rounds"
    suffix = " (Final required)" if rule.final_required else ""
    return f"{title} · Best {clamp_count(rule.n)} rounds{suffix}"


def _member_label(snapshot: TourSnapshot, group: Group) -> str:
    if group.name:
        return group.name
    names = {player.id: player.name for player in snapshot.players}
    return " / ".join(names.get(player_id, player_id) for player_id in group.member_ids)


def build_leaderboard(snapshot: TourSnapshot, kind: LeaderboardKind) -> Leaderboard:
    round_ids = snapshot.ordered_round_ids
    final_round_id = snapshot.final_round_id
    rows: list[LeaderboardRow] = []

    if isinstance(kind, Individual):
        for player in snapshot.players:
            per_round = individual_round_totals(snapshot, player.id)
            total, counted = tour_total(per_round, round_ids, kind.rule, final_round_id)
            rows.append(LeaderboardRow(player.id, player.name, total, per_round, counted))
    elif isinstance(kind, Pair):
        for pair in snapshot.groups_of_kind("pair"):
            per_round = pair_round_totals(snapshot, pair)
            total, counted = tour_total(per_round, round_ids, kind.rule, final_round_id)
            rows.append(LeaderboardRow(pair.id, _member_label(snapshot, pair), total, per_round, counted))
    elif isinstance(kind, Team):
        for team in snapshot.groups_of_kind("team"):
            per_round = team_round_totals(snapshot, team, kind.best_y.y)
            total, counted = tour_total(per_round, round_ids, AllRounds())
            rows.append(LeaderboardRow(team.id, _member_label(snapshot, team), total, per_round, counted))
    else:
        raise TypeError(f"Unsupported leaderboard kind: {kind!r}")

    rows.sort(key=lambda row: (-row.total, row.label.lower()))
    return Leaderboard(
        kind=type(kind).__name__.lower(),
        description=describe(kind),
        round_ids=round_ids,
        final_round_id=final_round_id,
        rows=rows,
    )
