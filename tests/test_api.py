import pytest
from fastapi.testclient import TestClient

import tourscore.main as main
from factories import card, group, make_snapshot, player, playing, tour_rounds
from tourscore.errors import UnknownEntityError
from tourscore.models import Round
from tourscore.settings import Settings


def _tour_snapshot(enabled=True, rounds=None):
    players = [player("p1", "Alice", 10), player("p2", "Bob", 10)]
    round_players = [
        playing("r1", "p1", 10),
        playing("r1", "p2", 10),
        playing("r2", "p2", 11),
    ]
    scores = (
        card("r1", "p1", 5)
        + card("r1", "p2", [5] * 10 + [7] * 8)
        + card("r2", "p2", 5)
    )
    groups = [group("team-1", "team", "p1", "p2", name="Blue")]
    return make_snapshot(
        players,
        rounds or tour_rounds(3),
        round_players,
        scores,
        groups=groups,
        enabled=enabled,
    )


@pytest.fixture
def state():
    return {"snapshot": _tour_snapshot(), "saved": []}


@pytest.fixture
def client(monkeypatch, state):
    def fake_load(database_url, tour_id, default_team_best_y=2):
        if tour_id != "tour-1":
            raise UnknownEntityError("tour", tour_id)
        return state["snapshot"]

    def fake_save(database_url, snapshot, result):
        state["saved"].append(result)
        return len(result.handicaps)

    monkeypatch.setattr(main, "settings", Settings(database_url="postgresql://test/test", admin_pin="9999"))
    monkeypatch.setattr(main, "load_tour_snapshot", fake_load)
    monkeypatch.setattr(main, "upsert_round_handicaps", fake_save)
    return TestClient(main.app)


def test_points_endpoint(client):
    response = client.post(
        "/api/points",
        json={"strokes": 5, "par": 4, "stroke_index": 1, "playing_handicap": 10},
    )
    assert response.status_code == 200
    assert response.json() == {"points": 2}

    pickup = client.post("/api/points", json={"strokes": "P", "par": 4, "stroke_index": 1})
    assert pickup.json() == {"points": 0}


def test_points_endpoint_rejects_missing_par(client):
    response = client.post("/api/points", json={"strokes": 5, "stroke_index": 1})
    assert response.status_code == 422
    assert response.json()["error"] == "Invalid payload"


def test_individual_leaderboard(client):
    response = client.get("/api/tours/tour-1/leaderboards/individual")
    assert response.status_code == 200
    body = response.json()
    assert body["rounds"] == ["r1", "r2", "r3"]
    assert body["final_round_id"] == "r3"
    assert [(row["label"], row["total"]) for row in body["rows"]] == [("Bob", 49), ("Alice", 28)]


def test_best_n_leaderboard(client):
    response = client.get(
        "/api/tours/tour-1/leaderboards/individual",
        params={"mode": "best_n", "n": 1},
    )
    body = response.json()
    assert body["description"] == "Individual Stableford · Best 1 rounds"
    bob = body["rows"][0]
    assert bob["total"] == 29
    assert bob["counted_round_ids"] == ["r2"]


def test_unknown_leaderboard_or_tour(client):
    assert client.get("/api/tours/tour-1/leaderboards/foursomes").status_code == 404
    assert client.get("/api/tours/tour-9/leaderboards/individual").status_code == 404


def test_team_round_detail(client):
    response = client.get("/api/tours/tour-1/teams/team-1/rounds/r1", params={"best_y": 1})
    assert response.status_code == 200
    body = response.json()
    assert body["best_y"] == 1
    assert body["total"] == 20
    assert body["holes"][0]["counted"] == ["p1"]
    assert body["holes"][0]["qualifying"] == ["p2"]
    assert body["holes"][17]["zeros"] == ["p2"]
    players = {entry["player_id"]: entry for entry in body["players"]}
    assert players["p1"]["counted_contribution"] == 28
    assert players["p2"]["counted_contribution"] == -8
    assert players["p2"]["contribution"] == 12
    assert sum(entry["counted_contribution"] for entry in players.values()) == body["total"]

    assert client.get("/api/tours/tour-1/teams/team-9/rounds/r1").status_code == 404
    assert client.get("/api/tours/tour-1/teams/team-1/rounds/r9").status_code == 404


def test_player_stats(client):
    response = client.get("/api/tours/tour-1/players/p1/stats")
    assert response.status_code == 200
    body = response.json()
    assert body["best"] == 28
    assert body["gross_outcomes"]["bogey"] == 18
    assert client.get("/api/tours/tour-1/players/ghost/stats").status_code == 404


def test_eclectic(client):
    body = client.get("/api/tours/tour-1/competitions/eclectic").json()
    assert [row["player_id"] for row in body["rows"]] == ["p2", "p1"]


def test_rehandicap_requires_pin(client, state):
    response = client.post("/api/tours/tour-1/rehandicap", json={"pin": "0000"})
    assert response.status_code == 403
    assert state["saved"] == []


def test_rehandicap_saves_handicaps(client, state):
    response = client.post("/api/tours/tour-1/rehandicap", json={"pin": "9999"})
    assert response.status_code == 200
    body = response.json()
    assert body["enabled"] is True
    assert body["updated"] == 6
    assert body["rounds"][1] == {"round_id": "r2", "handicaps": {"p1": 9, "p2": 11}}
    assert [step["avg_rounded"] for step in body["steps"]] == [24, 29, None]
    assert len(state["saved"]) == 1


def test_rehandicap_dry_run_skips_saving(client, state):
    response = client.post("/api/tours/tour-1/rehandicap", json={"pin": "9999", "dry_run": True})
    assert response.status_code == 200
    assert response.json()["updated"] == 0
    assert state["saved"] == []


def test_rehandicap_reports_gaps(client, state):
    state["snapshot"] = _tour_snapshot(
        rounds=[
            Round("r1", "tour-1", "course-1", round_no=1),
            Round("r2", "tour-1", "course-1", round_no=2),
            Round("r3", "tour-1", "course-1", round_no=4),
        ]
    )
    response = client.post("/api/tours/tour-1/rehandicap", json={"pin": "9999"})
    assert response.status_code == 409


def test_manual_handicap_applies_forward(client, state):
    state["snapshot"] = _tour_snapshot(enabled=False)
    response = client.post(
        "/api/tours/tour-1/handicaps/manual",
        json={"pin": "9999", "player_id": "p1", "from_round_id": "r2", "playing_handicap": 6},
    )
    assert response.status_code == 200
    assert response.json() == {"updated": 3, "handicaps": {"p1": 6}}
    saved = state["saved"][0]
    assert saved.handicaps == {("r1", "p1"): 10, ("r2", "p1"): 6, ("r3", "p1"): 6}


def test_manual_handicap_reset_and_guards(client, state):
    state["snapshot"] = _tour_snapshot(enabled=False)
    reset = client.post(
        "/api/tours/tour-1/handicaps/manual",
        json={"pin": "9999", "player_id": "p2", "from_round_id": "r2"},
    )
    assert reset.json()["handicaps"] == {"p2": 10}

    unknown = client.post(
        "/api/tours/tour-1/handicaps/manual",
        json={"pin": "9999", "player_id": "ghost", "from_round_id": "r2", "playing_handicap": 4},
    )
    assert unknown.status_code == 404

    state["snapshot"] = _tour_snapshot(enabled=True)
    blocked = client.post(
        "/api/tours/tour-1/handicaps/manual",
        json={"pin": "9999", "player_id": "p1", "from_round_id": "r2", "playing_handicap": 4},
    )
    assert blocked.status_code == 409


def test_team_leaderboard_uses_tour_best_y(client, state):
    players = [player("a", "Ann", 0), player("b", "Ben", 0), player("c", "Cat", 0)]
    state["snapshot"] = make_snapshot(
        players,
        tour_rounds(1),
        [playing("r1", p.id, 0) for p in players],
        card("r1", "a", 4) + card("r1", "b", 3) + card("r1", "c", 5),
        groups=[group("t1", "team", "a", "b", "c", name="Blue")],
        team_best_y=3,
    )

    board = client.get("/api/tours/tour-1/leaderboards/teams").json()
    detail = client.get("/api/tours/tour-1/teams/t1/rounds/r1").json()
    assert detail["best_y"] == 3
    assert board["rows"][0]["per_round"]["r1"] == detail["total"] == 108
    assert board["description"].startswith("Teams · Best 3 scores")

    narrowed = client.get("/api/tours/tour-1/leaderboards/teams", params={"best_y": 2}).json()
    assert narrowed["rows"][0]["total"] == 90


def test_unknown_leaderboard_mode_is_rejected(client):
    response = client.get("/api/tours/tour-1/leaderboards/individual", params={"mode": "best_of_all"})
    assert response.status_code == 422


def test_competitions(client):
    napoleon = client.get("/api/tours/tour-1/competitions/napoleon")
    assert napoleon.status_code == 200
    assert napoleon.json()["rows"][0]["points_total"] == 0

    bagel_man = client.get("/api/tours/tour-1/competitions/bagel_man").json()
    rows = {row["player_id"]: row for row in bagel_man["rows"]}
    assert rows["p2"]["matching_holes"] == 8
    assert rows["p2"]["holes_played"] == 36

    assert client.get("/api/tours/tour-1/competitions/longest_drive").status_code == 404


def test_h2z_competition(client):
    response = client.get("/api/tours/tour-1/competitions/h2z", params={"start_round_no": 1, "end_round_no": 1})
    assert response.status_code == 200
    body = response.json()
    assert body["leg"] == {"start_round_no": 1, "end_round_no": 1}
    assert [row["best_score"] for row in body["rows"]] == [0, 0]
