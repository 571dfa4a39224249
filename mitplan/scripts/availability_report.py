"""CLI script to print ability availability windows for a saved plan."""

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from mitplan.config import get_settings
from mitplan.cooldown.catalogue import load_catalogue
from mitplan.cooldown.manager import CooldownManager

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print availability windows for abilities in a plan file",
    )
    parser.add_argument("plan", help="Plan JSON with events, assignments, selectedJobs, level")
    parser.add_argument(
        "--abilities",
        help="Comma-separated ability IDs (default: every assigned ability)",
    )
    parser.add_argument("--start", type=float, default=0.0)
    parser.add_argument("--end", type=float, help="Default: last event time")
    parser.add_argument("--step", type=float, default=1.0)
    parser.add_argument("--catalogue", default=None, help="Ability catalogue JSON path")
    parser.add_argument("--level", type=int, default=None, help="Override encounter level")
    return parser.parse_args(argv)


def load_plan(path: str | Path) -> dict[str, Any]:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return raw


def summarize_timeline(timeline: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Collapse per-step samples into spans of unchanged (availability, reason)."""
    spans: list[dict[str, Any]] = []
    for sample in timeline:
        state = (sample["is_available"], sample["reason"])
        if spans and (spans[-1]["is_available"], spans[-1]["reason"]) == state:
            spans[-1]["end"] = sample["time"]
            continue
        spans.append({
            "start": sample["time"],
            "end": sample["time"],
            "is_available": sample["is_available"],
            "reason": sample["reason"],
        })
    return spans


def run(
    plan_path: str,
    ability_ids: list[str] | None = None,
    start: float = 0.0,
    end: float | None = None,
    step: float = 1.0,
    catalogue_path: str | None = None,
    level: int | None = None,
) -> dict[str, list[dict[str, Any]]]:
    settings = get_settings()
    catalogue = load_catalogue(
        catalogue_path if catalogue_path is not None else settings.catalogue.path
    )
    plan = load_plan(plan_path)

    if level is None:
        level = plan.get("level", settings.engine.default_level)
    manager = CooldownManager(
        catalogue,
        events=plan.get("events", []),
        assignments=plan.get("assignments", {}),
        selected_jobs=plan.get("selectedJobs", plan.get("selected_jobs")),
        level=level,
        stack_capacity=settings.engine.stack_capacity,
        stack_refill_interval=settings.engine.stack_refill_interval,
    )

    if not ability_ids:
        ability_ids = sorted({
            a.ability_id for entries in manager.assignments.values() for a in entries
        })
    if end is None:
        end = max((e.time for e in manager.events), default=start)

    report: dict[str, list[dict[str, Any]]] = {}
    for ability_id in ability_ids:
        if ability_id not in catalogue:
            logger.warning("Skipping unknown ability %s", ability_id)
            continue
        spans = summarize_timeline(manager.cooldown_timeline(ability_id, start, end, step))
        report[ability_id] = spans
        logger.info("%s (%d uses)", ability_id, len(manager.usage_history(ability_id)))
        for span in spans:
            logger.info(
                "  %7.1f - %7.1f  %s",
                span["start"], span["end"],
                "available" if span["is_available"] else span["reason"],
            )
    return report


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.INFO)
    ability_ids = None
    if args.abilities:
        ability_ids = [a.strip() for a in args.abilities.split(",") if a.strip()]
    run(
        args.plan,
        ability_ids=ability_ids,
        start=args.start,
        end=args.end,
        step=args.step,
        catalogue_path=args.catalogue,
        level=args.level,
    )


if __name__ == "__main__":
    main()
