from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from functools import cached_property

from tourscore.errors import UnknownEntityError
from tourscore.stableford import BLANK, RawScore, parse_raw_score

MEN_TEE = "M"
WOMEN_TEE = "F"


def normalize_tee(value: object) -> str:
    text = str(value if value is not None else "").strip().upper()
    return WOMEN_TEE if text == WOMEN_TEE else MEN_TEE


def normalize_handicap(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return max(0, math.floor(number))


@dataclass(frozen=True)
class HoleSpec:
    course_id: str
    hole_number: int
    par: int
    stroke_index: int
    tee: str = MEN_TEE


@dataclass(frozen=True)
class Tour:
    id: str
    name: str = "Tour"
    rehandicapping_enabled: bool = True


@dataclass(frozen=True)
class Round:
    id: str
    tour_id: str
    course_id: str | None
    round_no: int | None = None
    played_on: date | str | None = None
    created_at: datetime | str | None = None
    name: str | None = None


@dataclass(frozen=True)
class TourPlayer:
    id: str
    name: str
    starting_handicap: int = 0
    tee: str = MEN_TEE


@dataclass(frozen=True)
class RoundPlayer:
    round_id: str
    player_id: str
    playing: bool
    playing_handicap: int | None = None
    tee: str | None = None


@dataclass(frozen=True)
class ScoreRow:
    round_id: str
    player_id: str
    hole_number: int
    strokes: int | str | None
    pickup: bool = False

    @property
    def raw(self) -> RawScore:
        return parse_raw_score(self.strokes, self.pickup)


@dataclass(frozen=True)
class Group:
    id: str
    name: str
    kind: str
    member_ids: tuple[str, ...]
    team_index: int | None = None


@dataclass(frozen=True)
class AllRounds:
    pass


@dataclass(frozen=True)
class BestN:
    n: int
    final_required: bool = False


@dataclass(frozen=True)
class BestY:
    y: int


RoundRule = AllRounds | BestN


@dataclass(frozen=True)
class Individual:
    rule: RoundRule = field(default_factory=AllRounds)


@dataclass(frozen=True)
class Pair:
    rule: RoundRule = field(default_factory=AllRounds)


@dataclass(frozen=True)
class Team:
    best_y: BestY = field(default_factory=lambda: BestY(2))


LeaderboardKind = Individual | Pair | Team


def _text_key(value: object) -> tuple[int, str]:
    if value in (None, ""):
        return (1, "")
    return (0, str(value))


def round_sort_key(round_: Round) -> tuple:
    """Tour order: round_no (nulls last), then played_on, created_at and id."""
    return (
        (0, round_.round_no) if round_.round_no is not None else (1, 0),
        _text_key(round_.played_on),
        _text_key(round_.created_at),
        str(round_.id),
    )


def group_sort_key(group: Group) -> tuple:
    return (
        group.team_index if group.team_index is not None else 999,
        (group.name or "").lower(),
        group.id,
    )


@dataclass(frozen=True)
class TourSnapshot:
    """Every row the engine needs for one tour, loaded up front."""

    tour: Tour
    rounds: tuple[Round, ...] = ()
    players: tuple[TourPlayer, ...] = ()
    round_players: tuple[RoundPlayer, ...] = ()
    holes: tuple[HoleSpec, ...] = ()
    scores: tuple[ScoreRow, ...] = ()
    groups: tuple[Group, ...] = ()
    team_best_y: int = 2

    @cached_property
    def ordered_rounds(self) -> tuple[Round, ...]:
        return tuple(sorted(self.rounds, key=round_sort_key))

    @cached_property
    def ordered_round_ids(self) -> tuple[str, ...]:
        return tuple(round_.id for round_ in self.ordered_rounds)

    @property
    def final_round_id(self) -> str | None:
        return self.ordered_round_ids[-1] if self.rounds else None

    @cached_property
    def _rounds_by_id(self) -> dict[str, Round]:
        return {round_.id: round_ for round_ in self.rounds}

    @cached_property
    def _players_by_id(self) -> dict[str, TourPlayer]:
        return {player.id: player for player in self.players}

    @cached_property
    def _groups_by_id(self) -> dict[str, Group]:
        return {group.id: group for group in self.groups}

    @cached_property
    def _round_players(self) -> dict[tuple[str, str], RoundPlayer]:
        return {(rp.round_id, rp.player_id): rp for rp in self.round_players}

    @cached_property
    def _holes(self) -> dict[tuple[str, str], dict[int, HoleSpec]]:
        table: dict[tuple[str, str], dict[int, HoleSpec]] = {}
        for hole in self.holes:
            table.setdefault((str(hole.course_id), normalize_tee(hole.tee)), {})[hole.hole_number] = hole
        return table

    @cached_property
    def _scores(self) -> dict[tuple[str, str, int], RawScore]:
        return {(s.round_id, s.player_id, s.hole_number): s.raw for s in self.scores}

    def round(self, round_id: str) -> Round:
        try:
            return self._rounds_by_id[round_id]
        except KeyError:
            raise UnknownEntityError("round", round_id) from None

    def player(self, player_id: str) -> TourPlayer:
        try:
            return self._players_by_id[player_id]
        except KeyError:
            raise UnknownEntityError("player", player_id) from None

    def group(self, group_id: str) -> Group:
        try:
            return self._groups_by_id[group_id]
        except KeyError:
            raise UnknownEntityError("group", group_id) from None

    def groups_of_kind(self, kind: str) -> list[Group]:
        return sorted((g for g in self.groups if g.kind == kind), key=group_sort_key)

    def round_player(self, round_id: str, player_id: str) -> RoundPlayer | None:
        return self._round_players.get((round_id, player_id))

    def is_playing(self, round_id: str, player_id: str) -> bool:
        entry = self.round_player(round_id, player_id)
        return bool(entry and entry.playing)

    def playing_handicap(self, round_id: str, player_id: str) -> int:
        entry = self.round_player(round_id, player_id)
        if entry and entry.playing_handicap is not None:
            return entry.playing_handicap
        return 0

    def stored_handicaps(self) -> dict[tuple[str, str], int]:
        """Handicaps as saved on round_players, falling back to the starting handicap."""
        stored = {}
        for round_id in self.ordered_round_ids:
            for player in self.players:
                entry = self.round_player(round_id, player.id)
                if entry and entry.playing_handicap is not None:
                    stored[(round_id, player.id)] = entry.playing_handicap
                else:
                    stored[(round_id, player.id)] = player.starting_handicap
        return stored

    def tee_for(self, round_id: str, player_id: str) -> str:
        entry = self.round_player(round_id, player_id)
        if entry and entry.tee:
            return normalize_tee(entry.tee)
        player = self._players_by_id.get(player_id)
        return player.tee if player else MEN_TEE

    def holes_for(self, course_id: str | None, tee: str) -> dict[int, HoleSpec]:
        if not course_id:
            return {}
        course = str(course_id)
        return self._holes.get((course, normalize_tee(tee))) or self._holes.get((course, MEN_TEE)) or {}

    def raw_score(self, round_id: str, player_id: str, hole_number: int) -> RawScore:
        return self._scores.get((round_id, player_id, hole_number), BLANK)
