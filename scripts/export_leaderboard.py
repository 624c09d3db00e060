import argparse
import json
from pathlib import Path

from tourscore.aggregate import build_leaderboard
from tourscore.db import load_tour_snapshot
from tourscore.models import AllRounds, BestN, BestY, Individual, Pair, Team
from tourscore.settings import load_settings


def _kind(args: argparse.Namespace, team_best_y: int):
    rule = BestN(args.best_n, args.final_required) if args.best_n else AllRounds()
    if args.kind == "individual":
        return Individual(rule)
    if args.kind == "pairs":
        return Pair(rule)
    return Team(BestY(args.best_y if args.best_y is not None else team_best_y))


def export_leaderboard(tour_id: str, args: argparse.Namespace) -> dict:
    settings = load_settings()
    snapshot = load_tour_snapshot(settings.database_url, tour_id, settings.default_team_best_y)
    board = build_leaderboard(snapshot, _kind(args, snapshot.team_best_y))
    return {
        "tour": snapshot.tour.name,
        "description": board.description,
        "rounds": list(board.round_ids),
        "rows": [
            {
                "label": row.label,
                "total": row.total,
                "per_round": row.per_round,
                "counted": sorted(row.counted_round_ids, key=board.round_ids.index),
            }
            for row in board.rows
        ],
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Dump a tour leaderboard as JSON.")
    parser.add_argument("--tour-id", "-t", required=True, help="Tour ID to export.")
    parser.add_argument("--kind", choices=("individual", "pairs", "teams"), default="individual")
    parser.add_argument("--best-n", type=int, default=0, help="Count only the best N rounds (0 = all rounds).")
    parser.add_argument("--final-required", action="store_true", help="Always count the final round.")
    parser.add_argument(
        "--best-y",
        type=int,
        help="Team scores counted per hole (defaults to the tour setting).",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Path to write the JSON export (defaults to stdout).",
    )
    args = parser.parse_args()

    payload = json.dumps(export_leaderboard(args.tour_id, args), default=str, indent=2)
    if args.output:
        args.output.write_text(payload, encoding="utf-8")
        print(f"Leaderboard saved to {args.output}")
    else:
        print(payload)


if __name__ == "__main__":
    main()
