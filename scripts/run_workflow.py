#!/usr/bin/env python3
"""CLI runner for the import -> creatives -> sales page workflow."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Iterable

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from studio.config import configure_langsmith, load_settings  # noqa: E402
from studio.models import Language, WorkflowStep  # noqa: E402
from studio.orchestrator import CREATIVE_KINDS  # noqa: E402
from studio.session import WorkflowSession, open_session  # noqa: E402

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
LOGGER = logging.getLogger(__name__)


async def run_workflow(url: str, language: Language, margin: float | None = None) -> WorkflowSession:
    settings = load_settings()
    configure_langsmith(settings)
    session = await open_session(settings)
    orchestrator = session.orchestrator

    try:
        if margin is not None:
            orchestrator.set_margin(margin)

        if not await orchestrator.import_product(url, language):
            return session

        # The three creative kinds are independent and run side by side.
        await asyncio.gather(*(orchestrator.generate_creatives(kind) for kind in CREATIVE_KINDS))

        if orchestrator.advance():
            await orchestrator.generate_sales_page()
        return session
    finally:
        await session.close()


def format_events(events: Iterable[dict]) -> str:
    return "\n".join(
        f"  - {event['recorded_at']} | {event['kind']} [{event['status']}]: {event['message']}"
        for event in events
    )


def print_text(session: WorkflowSession) -> None:
    state = session.state
    print("Workflow steps:", " → ".join(step.value for step in WorkflowStep))
    print(f"Current step: {state.step.value} (guard {session.guard.state.value})")
    if state.product:
        print(f"\nProduct: {state.product.title}")
        print(f"Supplier price: {state.product.supplier_price:.2f} | Margin: {state.margin:g}% "
              f"| Selling price: {state.selling_price:.2f}")
    if state.creatives:
        print("\nCreatives:")
        print(json.dumps(state.creatives.as_dict(), indent=2, ensure_ascii=False))
    if state.sales_page:
        print("\nSales page:")
        print(json.dumps(state.sales_page.as_dict(), indent=2, ensure_ascii=False))
    for notice in session.orchestrator.notices:
        print(f"\n! {notice.message}")
    print("\nWorkflow events:")
    print(format_events(event.as_dict() for event in session.orchestrator.events))


def print_json(session: WorkflowSession) -> None:
    payload = session.as_dict()
    payload["events"] = [event.as_dict() for event in session.orchestrator.events]
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def stream_events(session: WorkflowSession) -> None:
    print(json.dumps({"type": "start", "workflow_steps": [step.value for step in WorkflowStep]}))
    sys.stdout.flush()
    for event in session.orchestrator.events:
        print(json.dumps({"type": "event", "event": event.as_dict()}, ensure_ascii=False))
        sys.stdout.flush()
    print(json.dumps({"type": "state", "state": session.state.as_dict()}, ensure_ascii=False))
    print(json.dumps({"type": "done", "notices": len(session.orchestrator.notices)}))
    sys.stdout.flush()


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the dropshipping studio workflow for one product")
    parser.add_argument("url", help="Supplier product URL")
    parser.add_argument(
        "--language",
        choices=[language.value for language in Language],
        default=Language.PORTUGUESE.value,
        help="Target language for the generated content",
    )
    parser.add_argument("--margin", type=float, default=None, help="Markup percentage over the supplier price")
    parser.add_argument(
        "--format",
        choices=("text", "json", "stream"),
        default="text",
        help="Output format",
    )
    args = parser.parse_args()

    session = asyncio.run(run_workflow(args.url, Language(args.language), args.margin))

    if session.state.product is None and not session.orchestrator.notices:
        LOGGER.warning("Workflow is locked: set an API key or unset STUDIO_REQUIRE_CREDENTIAL.")

    if args.format == "text":
        print_text(session)
    elif args.format == "json":
        print_json(session)
    else:
        stream_events(session)

    return 1 if session.orchestrator.notices else 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
