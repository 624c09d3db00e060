import logging

import psycopg

from tourscore.errors import UnknownEntityError
from tourscore.models import (
    Group,
    HoleSpec,
    Round,
    RoundPlayer,
    ScoreRow,
    Tour,
    TourPlayer,
    TourSnapshot,
    normalize_handicap,
    normalize_tee,
)
from tourscore.rehandicap import RehandicapResult
from tourscore.settings import DEFAULT_TEAM_BEST_Y

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    """
    create table if not exists tours (
        id uuid primary key default gen_random_uuid(),
        name text not null,
        rehandicapping_enabled boolean not null default false
    );
    """,
    """
    create table if not exists players (
        id uuid primary key default gen_random_uuid(),
        name text not null,
        start_handicap integer,
        gender text
    );
    """,
    """
    create table if not exists tour_players (
        tour_id uuid not null references tours(id) on delete cascade,
        player_id uuid not null references players(id) on delete cascade,
        starting_handicap integer,
        created_at timestamptz not null default now(),
        primary key (tour_id, player_id)
    );
    """,
    """
    create table if not exists rounds (
        id uuid primary key default gen_random_uuid(),
        tour_id uuid not null references tours(id) on delete cascade,
        course_id uuid,
        round_no integer,
        played_on date,
        name text,
        created_at timestamptz not null default now()
    );
    """,
    """
    create table if not exists round_players (
        round_id uuid not null references rounds(id) on delete cascade,
        player_id uuid not null references players(id) on delete cascade,
        playing boolean not null default false,
        playing_handicap integer,
        tee text not null default 'M',
        primary key (round_id, player_id)
    );
    """,
    """
    create table if not exists pars (
        course_id uuid not null,
        tee text not null default 'M',
        hole_number integer not null,
        par integer not null,
        stroke_index integer not null,
        primary key (course_id, tee, hole_number)
    );
    """,
    """
    create table if not exists scores (
        round_id uuid not null references rounds(id) on delete cascade,
        player_id uuid not null references players(id) on delete cascade,
        hole_number integer not null,
        strokes integer,
        pickup boolean not null default false,
        primary key (round_id, player_id, hole_number)
    );
    """,
    """
    create table if not exists tour_groups (
        id uuid primary key default gen_random_uuid(),
        tour_id uuid not null references tours(id) on delete cascade,
        scope text not null default 'tour',
        round_id uuid references rounds(id) on delete cascade,
        type text not null,
        name text not null,
        team_index integer,
        created_at timestamptz not null default now()
    );
    """,
    """
    create table if not exists tour_group_members (
        group_id uuid not null references tour_groups(id) on delete cascade,
        player_id uuid not null references players(id) on delete cascade,
        position integer,
        primary key (group_id, player_id)
    );
    """,
    """
    create table if not exists tour_grouping_settings (
        tour_id uuid primary key references tours(id) on delete cascade,
        default_team_best_m integer
    );
    """,
]


def ensure_schema(database_url: str) -> None:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            for statement in SCHEMA_STATEMENTS:
                cur.execute(statement)


def _fetch_tour(cur: psycopg.Cursor, tour_id: str) -> Tour:
    cur.execute(
        """
        select id::text, name, rehandicapping_enabled
        from tours
        where id::text = %s;
        """,
        (tour_id,),
    )
    row = cur.fetchone()
    if not row:
        raise UnknownEntityError("tour", tour_id)
    return Tour(id=row[0], name=(row[1] or "").strip() or "Tour", rehandicapping_enabled=row[2] is True)


def _fetch_rounds(cur: psycopg.Cursor, tour_id: str) -> list[Round]:
    cur.execute(
        """
        select id::text, tour_id::text, course_id::text, round_no, played_on, created_at, name
        from rounds
        where tour_id::text = %s;
        """,
        (tour_id,),
    )
    return [
        Round(
            id=row[0],
            tour_id=row[1],
            course_id=row[2],
            round_no=row[3],
            played_on=row[4],
            created_at=row[5],
            name=row[6],
        )
        for row in cur.fetchall()
    ]


def _fetch_tour_players(cur: psycopg.Cursor, tour_id: str) -> list[TourPlayer]:
    cur.execute(
        """
        select p.id::text, p.name, tp.starting_handicap, p.start_handicap, p.gender
        from tour_players tp
        join players p on p.id = tp.player_id
        where tp.tour_id::text = %s
        order by tp.created_at, p.name;
        """,
        (tour_id,),
    )
    players = []
    for player_id, name, tour_start, global_start, gender in cur.fetchall():
        starting = normalize_handicap(tour_start)
        if starting is None:
            starting = normalize_handicap(global_start) or 0
        players.append(
            TourPlayer(
                id=player_id,
                name=(name or "").strip() or "(missing player)",
                starting_handicap=starting,
                tee=normalize_tee(gender),
            )
        )
    return players


def _fetch_round_players(cur: psycopg.Cursor, round_ids: list[str], player_ids: list[str]) -> list[RoundPlayer]:
    cur.execute(
        """
        select round_id::text, player_id::text, playing, playing_handicap, tee
        from round_players
        where round_id::text = any(%s)
          and player_id::text = any(%s);
        """,
        (round_ids, player_ids),
    )
    return [
        RoundPlayer(
            round_id=row[0],
            player_id=row[1],
            playing=row[2] is True,
            playing_handicap=normalize_handicap(row[3]),
            tee=normalize_tee(row[4]) if row[4] else None,
        )
        for row in cur.fetchall()
    ]


def _fetch_holes(cur: psycopg.Cursor, course_ids: list[str]) -> list[HoleSpec]:
    cur.execute(
        """
        select course_id::text, hole_number, par, stroke_index, tee
        from pars
        where course_id::text = any(%s)
        order by course_id, tee, hole_number;
        """,
        (course_ids,),
    )
    holes = []
    for course_id, hole_number, par, stroke_index, tee in cur.fetchall():
        if hole_number is None or par is None:
            logger.warning("Skipping pars row for course %s with no hole/par", course_id)
            continue
        holes.append(
            HoleSpec(
                course_id=course_id,
                hole_number=int(hole_number),
                par=int(par),
                stroke_index=int(stroke_index or 0),
                tee=normalize_tee(tee),
            )
        )
    return holes


def _fetch_scores(cur: psycopg.Cursor, round_ids: list[str], player_ids: list[str]) -> list[ScoreRow]:
    cur.execute(
        """
        select round_id::text, player_id::text, hole_number, strokes, pickup
        from scores
        where round_id::text = any(%s)
          and player_id::text = any(%s);
        """,
        (round_ids, player_ids),
    )
    return [
        ScoreRow(
            round_id=row[0],
            player_id=row[1],
            hole_number=int(row[2]),
            strokes=row[3],
            pickup=row[4] is True,
        )
        for row in cur.fetchall()
    ]


def _fetch_groups(cur: psycopg.Cursor, tour_id: str) -> list[Group]:
    cur.execute(
        """
        select g.id::text, g.name, g.type, g.team_index, m.player_id::text, m.position
        from tour_groups g
        left join tour_group_members m on m.group_id = g.id
        where g.tour_id::text = %s
          and g.scope = 'tour'
        order by g.id, coalesce(m.position, 999), m.player_id;
        """,
        (tour_id,),
    )
    groups: dict[str, dict] = {}
    for group_id, name, kind, team_index, player_id, _position in cur.fetchall():
        entry = groups.setdefault(
            group_id,
            {"name": name or "", "kind": kind, "team_index": team_index, "members": []},
        )
        if player_id:
            entry["members"].append(player_id)
    return [
        Group(
            id=group_id,
            name=entry["name"],
            kind=entry["kind"],
            member_ids=tuple(entry["members"]),
            team_index=entry["team_index"],
        )
        for group_id, entry in groups.items()
    ]


def _fetch_team_best_y(cur: psycopg.Cursor, tour_id: str, default: int) -> int:
    cur.execute(
        """
        select default_team_best_m
        from tour_grouping_settings
        where tour_id::text = %s;
        """,
        (tour_id,),
    )
    row = cur.fetchone()
    if not row or row[0] is None:
        return default
    return max(1, int(row[0]))


def load_tour_snapshot(
    database_url: str,
    tour_id: str,
    default_team_best_y: int = DEFAULT_TEAM_BEST_Y,
) -> TourSnapshot:
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            tour = _fetch_tour(cur, tour_id)
            rounds = _fetch_rounds(cur, tour_id)
            round_ids = [round_.id for round_ in rounds]
            course_ids = sorted({round_.course_id for round_ in rounds if round_.course_id})
            players = _fetch_tour_players(cur, tour_id)
            player_ids = [player.id for player in players]
            snapshot = TourSnapshot(
                tour=tour,
                rounds=tuple(rounds),
                players=tuple(players),
                round_players=tuple(_fetch_round_players(cur, round_ids, player_ids)),
                holes=tuple(_fetch_holes(cur, course_ids)),
                scores=tuple(_fetch_scores(cur, round_ids, player_ids)),
                groups=tuple(_fetch_groups(cur, tour_id)),
                team_best_y=_fetch_team_best_y(cur, tour_id, default_team_best_y),
            )
    logger.debug(
        "Loaded tour %s: %d rounds, %d players, %d scores",
        tour_id,
        len(snapshot.rounds),
        len(snapshot.players),
        len(snapshot.scores),
    )
    return snapshot


def round_player_rows(snapshot: TourSnapshot, result: RehandicapResult) -> list[tuple]:
    """Rows for the round_players upsert, keeping the stored playing flag and tee."""
    rows = []
    for (round_id, player_id), playing_handicap in result.handicaps.items():
        existing = snapshot.round_player(round_id, player_id)
        rows.append(
            (
                round_id,
                player_id,
                bool(existing and existing.playing),
                playing_handicap,
                snapshot.tee_for(round_id, player_id),
            )
        )
    return rows


def upsert_round_handicaps(database_url: str, snapshot: TourSnapshot, result: RehandicapResult) -> int:
    rows = round_player_rows(snapshot, result)
    if not rows:
        return 0
    with psycopg.connect(database_url) as conn:
        with conn.transaction():
            with conn.cursor() as cur:
                cur.executemany(
                    """
                    insert into round_players (round_id, player_id, playing, playing_handicap, tee)
                    values (%s, %s, %s, %s, %s)
                    on conflict (round_id, player_id) do update
                        set playing_handicap = excluded.playing_handicap,
                            tee = excluded.tee;
                    """,
                    rows,
                )
    logger.info("Saved %d playing handicaps for tour %s", len(rows), snapshot.tour.id)
    return len(rows)
