from __future__ import annotations

import argparse
import json
from pathlib import Path

import uvicorn

from .api import create_app
from .progress import DAY_COUNT, DAY_LABELS, GAMES_PER_DAY, GRADES, NO_AVERAGE
from .service import TrackerService


def _service() -> TrackerService:
    return TrackerService.create()


def _print_day(service: TrackerService) -> None:
    state = service.state()
    day = state["selected_day"]
    print(f"{DAY_LABELS[day]}  (avg: {state['average']})")
    for idx, metric in enumerate(state["metrics"]):
        print(f"  [{idx}] {metric}")
    for game_idx, grades in enumerate(state["progress"][day]):
        cells = " ".join(str(grade) if grade else NO_AVERAGE for grade in grades)
        print(f"  game {game_idx + 1}: {cells}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Improvement sheet tracker CLI")
    sub = parser.add_subparsers(dest="command", required=True)
    day_choices = list(range(DAY_COUNT))

    show_cmd = sub.add_parser("show", help="Print checklist and grades for one day")
    show_cmd.add_argument("--day", type=int, default=0, choices=day_choices)

    grade_cmd = sub.add_parser("grade", help="Grade one metric for one game")
    grade_cmd.add_argument("--day", type=int, default=0, choices=day_choices)
    grade_cmd.add_argument("--game", type=int, required=True, choices=list(range(GAMES_PER_DAY)))
    grade_cmd.add_argument("--metric", type=int, required=True, help="Checklist index")
    grade_cmd.add_argument("--grade", type=int, required=True, choices=[0, *GRADES], help="0 clears the grade")

    add_cmd = sub.add_parser("add", help="Add a checklist question")
    add_cmd.add_argument("text")

    delete_cmd = sub.add_parser("delete", help="Remove a checklist question by index")
    delete_cmd.add_argument("index", type=int)

    sub.add_parser("save", help="Save a snapshot of current progress to history")
    sub.add_parser("reset", help="Clear current progress without saving")
    sub.add_parser("history", help="Print saved snapshots")
    sub.add_parser("average", help="Print the average of all graded cells")

    events_cmd = sub.add_parser("events", help="Print the event count and the most recent events")
    events_cmd.add_argument("--limit", type=int, default=10)

    export_cmd = sub.add_parser("export", help="Export stored state to a JSON file")
    export_cmd.add_argument("--out", required=True, help="Output JSON path")

    serve_cmd = sub.add_parser("serve", help="Run the local web page and API")
    serve_cmd.add_argument("--host", default=None)
    serve_cmd.add_argument("--port", type=int, default=None)

    args = parser.parse_args()
    service = _service()

    if args.command == "show":
        service.select_day(args.day)
        _print_day(service)
        return 0

    if args.command == "grade":
        if not 0 <= args.metric < len(service.metrics):
            print(f"metric index {args.metric} out of range (0..{len(service.metrics) - 1})")
            return 1
        service.select_day(args.day)
        service.set_grade(args.game, args.metric, args.grade, source="cli")
        print(json.dumps({"day": args.day, "game": args.game, "metric": args.metric, "grade": args.grade}, indent=2))
        return 0

    if args.command == "add":
        added = service.add_metric(args.text, source="cli")
        print(json.dumps({"added": added, "metrics": service.metrics}, indent=2, ensure_ascii=False))
        return 0 if added else 1

    if args.command == "delete":
        removed = service.delete_metric(args.index, source="cli")
        if removed is None:
            print(f"no checklist item at index {args.index}")
            return 1
        print(json.dumps({"removed": removed, "metrics": service.metrics}, indent=2, ensure_ascii=False))
        return 0

    if args.command == "save":
        snapshot = service.save_snapshot(source="cli")
        print(json.dumps({"id": snapshot["id"], "timestamp": snapshot["timestamp"], "avg": snapshot["avg"]}, indent=2))
        return 0

    if args.command == "reset":
        service.reset_progress(source="cli")
        print(json.dumps({"average": service.average()}, indent=2, ensure_ascii=False))
        return 0

    if args.command == "history":
        history = service.list_history()
        if not history:
            print("No snapshots saved yet.")
            return 0
        for snapshot in history:
            print(f"{snapshot.get('timestamp')}  Avg: {snapshot.get('avg')}")
        return 0

    if args.command == "average":
        print(service.average())
        return 0

    if args.command == "events":
        if service.events is None or not service.events.enabled:
            print("Event log disabled")
            return 0
        recent = service.events.iter_events()[-args.limit:] if args.limit > 0 else []
        print(json.dumps({"count": service.events.count_events(), "recent": recent}, indent=2))
        return 0

    if args.command == "export":
        print(json.dumps(service.export_state(Path(args.out), source="cli"), indent=2))
        return 0

    if args.command == "serve":
        app = create_app(service)
        host = args.host or service.settings.host
        port = args.port or service.settings.port
        uvicorn.run(app, host=host, port=port, log_level="info")
        return 0

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
