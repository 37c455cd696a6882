#!/usr/bin/env python3
"""
Run one bulk batch from a config YAML and a documents JSON file.

The documents file holds either a list of {id, name, content} objects or a
full payload object with ``documents``, ``task`` and optional settings.
"""

import argparse
import asyncio
import json
from pathlib import Path

from bulkproc import BulkEngine, load_engine_config
from bulkproc.parallel import BatchProcessor


def build_payload(args: argparse.Namespace) -> dict:
    data = json.loads(Path(args.documents).read_text())
    payload = data if isinstance(data, dict) else {"documents": data}
    if args.task:
        payload["task"] = args.task
    if args.instructions:
        payload["instructions"] = args.instructions
    if args.concurrency:
        payload["concurrency"] = args.concurrency
    return payload


async def run(args: argparse.Namespace) -> None:
    cfg = load_engine_config(args.config)
    async with BulkEngine(config=cfg) as engine:
        outcome = await engine.process_bulk(build_payload(args))

    summary = outcome.summary
    print(
        f"Job {outcome.job_id}: {summary.successful}/{summary.total} successful, "
        f"{summary.failed} failed, {summary.skipped} skipped, "
        f"cost ${summary.total_cost:.4f}, {summary.total_time_ms / 1000:.1f}s"
    )
    for result in outcome.results:
        if result.error and result.status.value == "failed":
            print(f"  {result.document_id}: {result.error}")

    if args.output:
        BatchProcessor.save_results(outcome, args.output)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a bulk completion batch.")
    parser.add_argument("documents", help="Path to documents JSON")
    parser.add_argument("--config", help="Path to engine config YAML")
    parser.add_argument(
        "--task",
        choices=["summarize", "extract", "categorize", "analyze"],
        help="Task category (overrides the payload)",
    )
    parser.add_argument("--instructions", help="Free-text system prompt override")
    parser.add_argument("--concurrency", type=int, help="Requested concurrency (max 10)")
    parser.add_argument("--output", help="Write results JSON to this path")
    args = parser.parse_args()

    asyncio.run(run(args))


if __name__ == "__main__":
    main()
