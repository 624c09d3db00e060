#!/usr/bin/env python3
"""Recompute every playing handicap for a tour and save the batch."""

from __future__ import annotations

import argparse
import json
import logging

from tourscore.db import load_tour_snapshot, upsert_round_handicaps
from tourscore.errors import TourDataError
from tourscore.rehandicap import recalculate_handicaps
from tourscore.settings import load_settings


def main() -> None:
    parser = argparse.ArgumentParser(description="Recalculate playing handicaps for every round of a tour.")
    parser.add_argument("--tour-id", "-t", required=True, help="Tour ID to recalculate.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the per-round averages and handicaps without saving them.",
    )
    args = parser.parse_args()

    settings = load_settings()
    logging.basicConfig(level=settings.log_level)

    try:
        snapshot = load_tour_snapshot(settings.database_url, args.tour_id, settings.default_team_best_y)
        result = recalculate_handicaps(snapshot)
    except TourDataError as exc:
        raise SystemExit(str(exc))

    if args.dry_run:
        names = {player.id: player.name for player in snapshot.players}
        steps = {step.round_id: step for step in result.steps}
        report = []
        for round_id in result.round_ids:
            step = steps.get(round_id)
            report.append(
                {
                    "round_id": round_id,
                    "avg_rounded": step.avg_rounded if step else None,
                    "handicaps": {names[pid]: ph for pid, ph in result.for_round(round_id).items()},
                    "adjustments": {names[pid]: adj for pid, adj in step.adjustments.items()} if step else {},
                }
            )
        print(json.dumps(report, indent=2))
        return

    updated = upsert_round_handicaps(settings.database_url, snapshot, result)
    mode = "rehandicapped" if result.enabled else "reset to starting handicap"
    print(f"Saved {updated} playing handicap{'s' if updated != 1 else ''} ({mode}) for tour {args.tour_id}.")


if __name__ == "__main__":
    main()
