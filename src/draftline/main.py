"""
Draftline command line

Runs the pipeline stages over local files and prints JSON to stdout.

Usage:
    draftline drafts signals.json --tz America/New_York
    draftline route "schedule a sync tomorrow at 3pm"
    draftline tasks drafts.json --now 2025-09-09T09:00:00-04:00
    draftline plan "I want to study Spanish every weekday evening"
    draftline relevance "What skills? What portfolio?" answer.txt

Input files hold JSON or YAML lists of objects. Logs go to stderr so the
JSON output can be piped.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, NoReturn

import yaml
from structlog.contextvars import bound_contextvars

from draftline import __version__
from draftline.config import DraftlineConfig, get_config
from draftline.intent import IntentRouter, StructuredIntentInterpreter, is_schedule_allowed
from draftline.llm import build_gateway
from draftline.pipeline import DraftGenerationPipeline, PipelineConfig
from draftline.relevance import AnswerRelevanceGuard
from draftline.scheduling import IntentSlotter
from draftline.tasks import post_process_task_drafts
from draftline.utils.logging import get_logger, setup_logging

logger = get_logger("draftline.cli")


def load_records(path: Path) -> list[dict[str, Any]]:
    """Read a JSON or YAML list of objects (a single object is wrapped)."""
    with open(path) as f:
        text = f.read()

    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text)
    else:
        data = json.loads(text)

    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of objects")
    return data


def parse_now(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def emit(payload: Any) -> None:
    json.dump(payload, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


def cmd_drafts(args: argparse.Namespace, config: DraftlineConfig) -> int:
    pipeline = DraftGenerationPipeline(PipelineConfig.from_config(config))
    result = pipeline.generate(
        load_records(args.signals),
        user_tz=args.tz,
        now=parse_now(args.now),
    )
    emit(result.to_dict())
    return 0


def cmd_route(args: argparse.Namespace, config: DraftlineConfig) -> int:
    router = IntentRouter(conversational_default=config.router.conversational_default)
    routed = router.route(args.text)
    emit({
        "intent": routed.intent.value,
        "reasons": routed.reasons,
        "scheduleAllowed": is_schedule_allowed(routed.intent),
    })
    return 0


def cmd_tasks(args: argparse.Namespace, config: DraftlineConfig) -> int:
    drafts = post_process_task_drafts(load_records(args.drafts), parse_now(args.now))
    emit([d.to_dict() for d in drafts if d.title])
    return 0


async def _plan(text: str, tz: str, now: datetime | None, config: DraftlineConfig) -> dict[str, Any]:
    router = IntentRouter(conversational_default=config.router.conversational_default)
    routed = router.route(text)
    out: dict[str, Any] = {"intent": routed.intent.value, "usi": None, "events": []}
    if not is_schedule_allowed(routed.intent):
        return out

    interpreter = StructuredIntentInterpreter(
        gateway=build_gateway(config.llm),
        max_tokens=config.llm.max_tokens,
        temperature=config.llm.temperature,
    )
    usi = await interpreter.interpret(text, tz)

    slotter = IntentSlotter(
        min_gap_minutes=config.pipeline.min_gap_minutes,
        daily_cap=config.slotter.daily_cap,
        max_occurrences=config.slotter.max_occurrences,
    )
    out["usi"] = usi.to_dict()
    out["events"] = [e.to_dict() for e in slotter.slot(usi, now=now)]
    return out


def cmd_plan(args: argparse.Namespace, config: DraftlineConfig) -> int:
    tz = args.tz or config.pipeline.user_tz
    emit(asyncio.run(_plan(args.text, tz, parse_now(args.now), config)))
    return 0


def cmd_relevance(args: argparse.Namespace, config: DraftlineConfig) -> int:
    answer = args.answer.read_text()
    answer_map, clarifier = AnswerRelevanceGuard().check(args.message, answer)
    emit({
        "items": [{"question": i.question, "answer": i.answer} for i in answer_map.items],
        "coverage": round(answer_map.coverage, 4),
        "relevance": round(answer_map.relevance, 4),
        "clarifier": clarifier,
    })
    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="draftline",
        description="Draftline - turn messages into draft calendar events",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--console",
        action="store_true",
        help="Use pretty console logging instead of JSON",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    drafts = sub.add_parser("drafts", help="Generate draft events from signals")
    drafts.add_argument("signals", type=Path, help="JSON or YAML list of signals")
    drafts.add_argument("--tz", help="Output timezone (IANA name)")
    drafts.add_argument("--now", help="Reference instant (ISO-8601)")
    drafts.set_defaults(handler=cmd_drafts)

    route = sub.add_parser("route", help="Classify a request")
    route.add_argument("text")
    route.set_defaults(handler=cmd_route)

    tasks = sub.add_parser("tasks", help="Normalize task drafts")
    tasks.add_argument("drafts", type=Path, help="JSON or YAML list of task drafts")
    tasks.add_argument("--now", help="Reference instant (ISO-8601)")
    tasks.set_defaults(handler=cmd_tasks)

    plan = sub.add_parser("plan", help="Propose events for a scheduling request")
    plan.add_argument("text")
    plan.add_argument("--tz", help="User timezone (IANA name)")
    plan.add_argument("--now", help="Reference instant (ISO-8601)")
    plan.set_defaults(handler=cmd_plan)

    relevance = sub.add_parser("relevance", help="Score how well an answer covers a message")
    relevance.add_argument("message")
    relevance.add_argument("answer", type=Path, help="File holding the answer text")
    relevance.set_defaults(handler=cmd_relevance)

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the draftline command."""
    args = parse_args(argv)

    config = get_config()

    if args.debug:
        config.log.level = "DEBUG"
    if args.console:
        config.log.format = "console"

    setup_logging(
        level=config.log.level,
        format=config.log.format,
        log_file=config.log.file,
    )

    try:
        with bound_contextvars(command=args.command):
            exit_code = args.handler(args, config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error("command_failed", command=args.command, error=str(e))
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
