#!/usr/bin/env python3
"""Run the fleet simulation and print every location update.

Usage
-----
Set environment variables and run::

    export ORS_API_KEY="your-openrouteservice-key"   # optional
    python scripts/run_simulation.py --duration 30

Options::

    --trackers N         Number of trackers (default: FLEETSIM_TRACKER_COUNT or 10)
    --interval-ms MS     Tick interval (default: FLEETSIM_TICK_INTERVAL_MS or 2000)
    --duration SECONDS   Stop after this long (default: run until interrupted)
    --seed N             Seed the random generator for a reproducible run
    --json               Print raw JSON messages instead of a table
    --history ID         Print this tracker's history on exit
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import random
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from fleetsim import BroadcastEvent, FanoutBroadcaster, FleetSimulator, SimulationConfig  # noqa: E402
from fleetsim.state.events import BroadcastMessage  # noqa: E402


def _format_timestamp(timestamp_ms: int) -> str:
    """Local, human-readable time for an epoch-milliseconds timestamp."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def _print_message(message: BroadcastMessage, *, json_mode: bool, names: dict[str, str]) -> None:
    if json_mode:
        print(json.dumps({"event": str(message.event), "data": message.payload}, ensure_ascii=False))
        return
    data: dict[str, Any] = message.payload
    if message.event == BroadcastEvent.INITIAL_STATE:
        print(f"initial state: {len(data.get('trackers', []))} tracker(s)")
        return
    tracker_id = data.get("trackerId", "?")
    print(
        f"{_format_timestamp(data.get('timestampMs', 0))}  "
        f"{names.get(tracker_id, tracker_id):<12} {data.get('lat', 0.0):>11.6f} {data.get('lng', 0.0):>11.6f}"
    )


async def main() -> None:
    parser = argparse.ArgumentParser(description="Run the fleet simulation and print location updates.")
    parser.add_argument("--trackers", type=int, help="Number of trackers")
    parser.add_argument("--interval-ms", type=int, help="Tick interval in milliseconds")
    parser.add_argument("--duration", type=float, help="Stop after this many seconds")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--history", metavar="TRACKER_ID", help="Print this tracker's history on exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    overrides: dict[str, Any] = {}
    if args.trackers is not None:
        overrides["tracker_count"] = args.trackers
    if args.interval_ms is not None:
        overrides["tick_interval_ms"] = args.interval_ms
    config = SimulationConfig.from_env(**overrides)

    rng = random.Random(args.seed) if args.seed is not None else None
    broadcaster = FanoutBroadcaster()

    async with FleetSimulator(config, broadcast=broadcaster, rng=rng) as sim:
        subscription = broadcaster.subscribe()
        await sim.start()
        names = {tracker.id: tracker.name for tracker in sim.query.get_all_trackers()}
        broadcaster.send_initial_state(subscription, sim.query.get_initial_state())

        async def _consume() -> None:
            while True:
                message = await subscription.get()
                _print_message(message, json_mode=args.json_mode, names=names)

        consumer = asyncio.create_task(_consume())
        try:
            if args.duration is not None:
                await asyncio.sleep(args.duration)
            else:
                await asyncio.Event().wait()
        finally:
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer
            broadcaster.unsubscribe(subscription)

        if args.history:
            history = sim.query.get_history(args.history)
            print(json.dumps([loc.to_wire() for loc in history], indent=2))
            if not history:
                print(f"No history for tracker {args.history!r}", file=sys.stderr)


if __name__ == "__main__":
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main())
