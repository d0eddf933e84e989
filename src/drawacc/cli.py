"""Command line entry point for the draw accumulator workbench."""

import argparse
import logging
import sys
from typing import List, Optional

from .config.loader import load_config
from .reporting.export import export_csv, export_json
from .simulation.runner import ScheduleRunner
from .validation import validate_schedule_results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="drawacc-workbench",
        description="Replay contribution schedules through a decaying draw accumulator"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Replay the configured schedule")
    run_parser.add_argument("--config", help="Path to a YAML file of overrides for the bundled defaults")
    run_parser.add_argument("--seed", type=int, help="Override the random seed")
    run_parser.add_argument("--csv", help="Write per-period rows to this CSV file")
    run_parser.add_argument("--json", help="Write the full result to this JSON file")

    hash_parser = subparsers.add_parser("hash", help="Print the config hash")
    hash_parser.add_argument("--config", help="Path to a YAML file of overrides for the bundled defaults")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    config = load_config(args.config)

    if args.command == "hash":
        print(config.compute_hash())
        return 0

    result = ScheduleRunner(config).run(random_seed=args.seed)
    if args.csv:
        export_csv(result, args.csv)
    if args.json:
        export_json(result, args.json)

    metrics = result.final_metrics
    print(f"Config hash:        {config.compute_hash()}")
    print(f"Contributions:      {metrics['num_contributions']:,}")
    print(f"Total contributed:  {metrics['total_contributed']:,}")
    print(f"Total disbursed:    {metrics['total_disbursed']:,}")
    print(f"Remaining:          {metrics['remaining']:,}")
    print(f"Drift:              {metrics['drift']:,}")
    print(f"Observations:       {metrics['num_observations']:,}")

    warnings = validate_schedule_results(config, result)
    for warning in warnings:
        print(f"[{warning.severity}] {warning.category}: {warning.message}", file=sys.stderr)
        if warning.details:
            print(f"    {warning.details}", file=sys.stderr)

    return 1 if any(w.severity == "error" for w in warnings) else 0


if __name__ == "__main__":
    sys.exit(main())
