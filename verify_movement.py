#!/usr/bin/env python3
"""Offline run of the whole fleet on a virtual clock, printing what would be sent."""

import argparse
import json
import random
import sys
from collections import Counter
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from fleet_simulator.config import settings
from fleet_simulator.services.simulation import VirtualClock, create_scheduler


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--hours", type=float, default=1.0, help="Simulated hours to run.")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--show-sample", action="store_true", help="Print the last location payload.")
    args = parser.parse_args()

    clock = VirtualClock()
    scheduler = create_scheduler(clock, random.Random(args.seed))
    samples = []
    completions = []
    shutdowns = []
    scheduler.on_location_sample(samples.append)
    scheduler.on_completion(completions.append)
    scheduler.on_shutdown(shutdowns.append)

    scheduler.start()
    clock.advance(args.hours * 3600)
    scheduler.stop()

    stats = scheduler.statistics()
    print("=" * 60)
    print(f"Simulated {args.hours:g}h at one report every {settings.tick_interval_seconds:g}s")
    print("=" * 60)
    print(f"Samples:      {len(samples)}")
    print(f"Completions:  {len(completions)}")
    print(f"Shutdowns:    {len(shutdowns)}")
    print(f"Cycles:       {stats['cycles_completed']}")
    print(f"Restarts:     {stats['individual_restarts']}")
    print(f"Errors:       {stats['device_errors']} device, {stats['listener_errors']} listener")
    print()
    per_bus = Counter(sample.bus_id for sample in samples)
    print("Busiest buses:")
    for bus_id, count in per_bus.most_common(5):
        print(f"  {bus_id}: {count} samples")
    alerts = Counter()
    for sample in samples:
        for name, raised in sample.alerts.to_payload().items():
            if raised:
                alerts[name] += 1
    print("Alerts raised:")
    for name, count in sorted(alerts.items()):
        print(f"  {name}: {count}")

    if args.show_sample and samples:
        print()
        print(json.dumps(samples[-1].to_payload(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
