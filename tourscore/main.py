import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from tourscore.aggregate import Leaderboard, TeamRound, build_leaderboard, team_round
from tourscore.db import load_tour_snapshot, upsert_round_handicaps
from tourscore.errors import IncompleteHistoryError, UnknownEntityError
from tourscore.models import AllRounds, BestN, BestY, Individual, Pair, Team, TourSnapshot
from tourscore.rehandicap import RehandicapResult, apply_forward, recalculate_handicaps, reset_forward
from tourscore.settings import load_settings
from tourscore.stableford import parse_raw_score, points_for_hole
from tourscore.stats import (
    HOLE_SHARE_COMPETITIONS,
    PAR_AVERAGE_COMPETITIONS,
    H2ZLeg,
    eclectic,
    h2z_standings,
    hole_share,
    par_average,
    player_tour_stats,
    whole_tour_leg,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="tourscore")
settings = load_settings()

LEADERBOARD_KINDS = ("individual", "pairs", "teams")
ALL_ROUNDS_MODES = ("all",)
BEST_N_MODES = ("best_n", "best_q", "best")


class PointsPayload(BaseModel):
    strokes: int | str | None = None
    pickup: bool = False
    par: int
    stroke_index: int
    playing_handicap: int = 0


class RehandicapPayload(BaseModel):
    pin: str
    dry_run: bool = False


class ManualHandicapPayload(BaseModel):
    pin: str
    player_id: str
    from_round_id: str
    playing_handicap: int | None = Field(default=None, ge=0)


def _load_snapshot(tour_id: str) -> TourSnapshot:
    try:
        return load_tour_snapshot(settings.database_url, tour_id, settings.default_team_best_y)
    except UnknownEntityError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


def _leaderboard_kind(kind: str, mode: str, n: int, final_required: bool, best_y: int):
    rule = BestN(n, final_required) if mode in BEST_N_MODES else AllRounds()
    if kind == "individual":
        return Individual(rule)
    if kind == "pairs":
        return Pair(rule)
    return Team(BestY(best_y))


def _leaderboard_payload(board: Leaderboard) -> dict[str, Any]:
    return {
        "kind": board.kind,
        "description": board.description,
        "rounds": list(board.round_ids),
        "final_round_id": board.final_round_id,
        "rows": [
            {
                "entry_id": row.entry_id,
                "label": row.label,
                "total": row.total,
                "per_round": row.per_round,
                "counted_round_ids": [rid for rid in board.round_ids if rid in row.counted_round_ids],
            }
            for row in board.rows
        ],
    }


def _team_round_payload(snapshot: TourSnapshot, breakdown: TeamRound) -> dict[str, Any]:
    return {
        "round_id": breakdown.round_id,
        "team_id": breakdown.team_id,
        "best_y": breakdown.best_y,
        "total": breakdown.total,
        "holes": [
            {
                "hole_number": hole.hole_number,
                "total": hole.total,
                "points": hole.points,
                "counted": list(hole.selection.counted),
                "qualifying": list(hole.selection.qualifying),
                "cutoff": hole.selection.cutoff,
                "zeros": list(hole.zeros),
            }
            for hole in breakdown.holes
        ],
        "players": [
            {
                "player_id": player_id,
                "name": snapshot.player(player_id).name,
                "stableford_total": entry.stableford_total,
                "contribution": entry.contribution,
                "counted_contribution": entry.counted_contribution,
                "zero_count": entry.zero_count,
            }
            for player_id, entry in breakdown.contributions.items()
        ],
    }


@app.post("/api/points")
async def api_points(request: Request):
    try:
        payload = PointsPayload.model_validate(await request.json())
    except ValidationError as exc:
        return JSONResponse({"error": "Invalid payload", "details": exc.errors()}, status_code=422)

    raw = parse_raw_score(payload.strokes, payload.pickup)
    points = points_for_hole(raw, payload.par, payload.stroke_index, payload.playing_handicap)
    return {"points": points}


@app.get("/api/tours/{tour_id}/leaderboards/{kind}")
async def api_leaderboard(
    tour_id: str,
    kind: str,
    mode: str = "all",
    n: int = 1,
    final_required: bool = False,
    best_y: int | None = None,
):
    if kind not in LEADERBOARD_KINDS:
        raise HTTPException(status_code=404, detail=f"Unknown leaderboard: {kind}")
    mode = mode.strip().lower()
    if mode not in ALL_ROUNDS_MODES + BEST_N_MODES:
        return JSONResponse({"error": f"Unknown leaderboard mode: {mode}"}, status_code=422)
    snapshot = _load_snapshot(tour_id)
    if best_y is None:
        best_y = snapshot.team_best_y
    board = build_leaderboard(snapshot, _leaderboard_kind(kind, mode, n, final_required, best_y))
    return _leaderboard_payload(board)


@app.get("/api/tours/{tour_id}/teams/{team_id}/rounds/{round_id}")
async def api_team_round(tour_id: str, team_id: str, round_id: str, best_y: int | None = None):
    snapshot = _load_snapshot(tour_id)
    try:
        team = snapshot.group(team_id)
        breakdown = team_round(snapshot, round_id, team, best_y)
        return _team_round_payload(snapshot, breakdown)
    except UnknownEntityError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@app.get("/api/tours/{tour_id}/players/{player_id}/stats")
async def api_player_stats(tour_id: str, player_id: str):
    snapshot = _load_snapshot(tour_id)
    try:
        stats = player_tour_stats(snapshot, player_id)
    except UnknownEntityError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return {
        "player_id": stats.player_id,
        "rounds_completed": stats.rounds_completed,
        "best": stats.best,
        "worst": stats.worst,
        "average": stats.average,
        "std_dev": stats.std_dev,
        "holes_played": stats.holes_played,
        "pickups": stats.pickups,
        "gross_outcomes": stats.gross_outcomes,
        "net_outcomes": stats.net_outcomes,
        "rounds": [
            {
                "round_id": summary.round_id,
                "stableford_total": summary.stableford_total,
                "holes_scored": summary.holes_scored,
                "is_complete": summary.is_complete,
            }
            for summary in stats.rounds
        ],
    }


@app.get("/api/tours/{tour_id}/competitions/eclectic")
async def api_eclectic(tour_id: str):
    snapshot = _load_snapshot(tour_id)
    return {
        "rows": [
            {
                "player_id": row.player_id,
                "label": row.label,
                "total": row.total,
                "holes_played": row.holes_played,
            }
            for row in eclectic(snapshot)
        ]
    }


@app.get("/api/tours/{tour_id}/competitions/h2z")
async def api_h2z(tour_id: str, start_round_no: int | None = None, end_round_no: int | None = None):
    snapshot = _load_snapshot(tour_id)
    whole_tour = whole_tour_leg(snapshot)
    leg = H2ZLeg(
        leg_no=whole_tour.leg_no,
        start_round_no=start_round_no if start_round_no is not None else whole_tour.start_round_no,
        end_round_no=end_round_no if end_round_no is not None else whole_tour.end_round_no,
    )
    return {
        "leg": {"start_round_no": leg.start_round_no, "end_round_no": leg.end_round_no},
        "rows": [
            {
                "player_id": row.player_id,
                "label": row.label,
                "final_score": row.final_score,
                "best_score": row.best_score,
                "best_len": row.best_len,
            }
            for row in h2z_standings(snapshot, leg)
        ],
    }


@app.get("/api/tours/{tour_id}/competitions/{name}")
async def api_competition(tour_id: str, name: str):
    if name in PAR_AVERAGE_COMPETITIONS:
        tally_key = "points_total"
    elif name in HOLE_SHARE_COMPETITIONS:
        tally_key = "matching_holes"
    else:
        raise HTTPException(status_code=404, detail=f"Unknown competition: {name}")

    snapshot = _load_snapshot(tour_id)
    if name in PAR_AVERAGE_COMPETITIONS:
        rows = par_average(snapshot, PAR_AVERAGE_COMPETITIONS[name])
    else:
        rows = hole_share(snapshot, HOLE_SHARE_COMPETITIONS[name])
    return {
        "competition": name,
        "rows": [
            {
                "player_id": row.player_id,
                "label": row.label,
                "total": row.total,
                "holes_played": row.holes_played,
                tally_key: row.tally,
            }
            for row in rows
        ],
    }


@app.post("/api/tours/{tour_id}/rehandicap")
async def api_rehandicap(tour_id: str, request: Request):
    try:
        payload = RehandicapPayload.model_validate(await request.json())
    except ValidationError as exc:
        return JSONResponse({"error": "Invalid payload", "details": exc.errors()}, status_code=422)

    if payload.pin != settings.admin_pin:
        return JSONResponse({"error": "Invalid PIN"}, status_code=403)

    snapshot = _load_snapshot(tour_id)
    try:
        result = recalculate_handicaps(snapshot)
    except UnknownEntityError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except IncompleteHistoryError as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    if payload.dry_run:
        logger.info("Dry run: %d playing handicaps computed for tour %s", len(result.handicaps), tour_id)
        updated = 0
    else:
        updated = upsert_round_handicaps(settings.database_url, snapshot, result)
    return {
        "enabled": result.enabled,
        "updated": updated,
        "rounds": [
            {
                "round_id": round_id,
                "handicaps": result.for_round(round_id),
            }
            for round_id in result.round_ids
        ],
        "steps": [
            {
                "round_id": step.round_id,
                "avg_rounded": step.avg_rounded,
                "scores": step.scores,
                "adjustments": step.adjustments,
            }
            for step in result.steps
        ],
    }


@app.post("/api/tours/{tour_id}/handicaps/manual")
async def api_manual_handicap(tour_id: str, request: Request):
    try:
        payload = ManualHandicapPayload.model_validate(await request.json())
    except ValidationError as exc:
        return JSONResponse({"error": "Invalid payload", "details": exc.errors()}, status_code=422)

    if payload.pin != settings.admin_pin:
        return JSONResponse({"error": "Invalid PIN"}, status_code=403)

    snapshot = _load_snapshot(tour_id)
    if snapshot.tour.rehandicapping_enabled:
        raise HTTPException(status_code=409, detail="Automatic rehandicapping is enabled for this tour")

    current = snapshot.stored_handicaps()
    try:
        if payload.playing_handicap is None:
            handicaps = reset_forward(snapshot, current, payload.player_id, payload.from_round_id)
        else:
            snapshot.player(payload.player_id)
            handicaps = apply_forward(
                current,
                snapshot.ordered_round_ids,
                payload.player_id,
                payload.from_round_id,
                payload.playing_handicap,
            )
    except UnknownEntityError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    changed = {key: ph for key, ph in handicaps.items() if key[1] == payload.player_id}
    result = RehandicapResult(enabled=False, round_ids=snapshot.ordered_round_ids, handicaps=changed)
    updated = upsert_round_handicaps(settings.database_url, snapshot, result)
    return {"updated": updated, "handicaps": result.for_round(payload.from_round_id)}
