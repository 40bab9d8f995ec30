"""Command-line interface for tablemix."""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np
import yaml

from tablemix.errors import TablemixError
from tablemix.models import Assignment, Event, MatchingConfig
from tablemix.output import format_assignments_csv, format_conflicts, format_preview
from tablemix.parser import create_event_template, parse_event_yaml, parse_guests_csv
from tablemix.preview import PreviewStaging, resolve_weights
from tablemix.store import MemoryStore

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging to stderr."""
    level = logging.DEBUG if verbose else logging.WARNING
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)


def main() -> int:
    """Main entry point for tablemix CLI."""
    parser = argparse.ArgumentParser(
        description="Seat event guests at tables across one or more rounds.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  tablemix guests.csv --table-size 6
  tablemix guests.csv --config event.yaml --rounds 3
  tablemix guests.csv --config event.yaml --commit --output-csv seating.csv
""",
    )
    parser.add_argument(
        "guests_csv",
        type=Path,
        help="Path to the CSV file with the guest list",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to the event configuration YAML file",
    )
    parser.add_argument(
        "--table-size",
        type=int,
        help="Seats per table (overrides the config file)",
    )
    parser.add_argument(
        "--rounds",
        type=int,
        help="Number of seating rounds (overrides the config file)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for a reproducible seating",
    )
    parser.add_argument(
        "--commit",
        action="store_true",
        help="Commit the generated preview as the final seating",
    )
    parser.add_argument(
        "--output-csv",
        type=Path,
        help="Write the assignments to this CSV file",
    )
    parser.add_argument(
        "--output-template",
        type=Path,
        help="Path for the config template (default: event_template.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log engine progress to stderr",
    )

    args = parser.parse_args()
    setup_logging(args.verbose)

    if not args.guests_csv.exists():
        print(f"Error: Guest file not found: {args.guests_csv}", file=sys.stderr)
        return 1

    try:
        guests = parse_guests_csv(args.guests_csv)
    except (OSError, TablemixError) as e:
        print(f"Error parsing guest CSV: {e}", file=sys.stderr)
        return 1

    print(f"Loaded {len(guests)} guests")

    if args.config:
        if not args.config.exists():
            print(f"Error: Config file not found: {args.config}", file=sys.stderr)
            return 1
        try:
            event, config, constraints = parse_event_yaml(args.config, guests)
        except (OSError, yaml.YAMLError, TablemixError) as e:
            print(f"Error parsing config YAML: {e}", file=sys.stderr)
            return 1
        print(f"Loaded {len(constraints)} constraints")
    else:
        template_path = args.output_template or Path("event_template.yaml")
        create_event_template(template_path, guests, args.table_size or 8)
        print(f"\nNo config file provided. Created template at: {template_path}")
        print("Edit this file to set weights and constraints, then run again.\n")
        event = Event(id="event", name=args.guests_csv.stem, table_size=8)
        config = MatchingConfig(event_id=event.id)
        constraints = []

    if args.table_size is not None:
        event.table_size = args.table_size
    if args.rounds is not None:
        event.number_of_rounds = args.rounds
    if event.table_size < 1 or event.number_of_rounds < 1:
        print("Error: table size and rounds must be at least 1", file=sys.stderr)
        return 1

    logger.debug(
        "Event %s: %d guests, table size %d, %d round(s)",
        event.id,
        len(guests),
        event.table_size,
        event.number_of_rounds,
    )
    store = MemoryStore()
    store.load(event, guests, constraints, config)
    staging = PreviewStaging(store, rng=np.random.default_rng(args.seed))

    try:
        conflicts = staging.constraint_conflicts(event.id)
        result = staging.generate(event.id)
        view = staging.get(event.id)
        weights = resolve_weights(config)
    except TablemixError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if conflicts:
        print(format_conflicts(conflicts))
        print()
    if view is not None:
        print(format_preview(result, view, guests, weights))

    if args.commit:
        committed = staging.commit(event.id)
        print(f"\nCommitted {committed.assigned_count} assignments")
        assignments = store.assignments_for(event.id)
    else:
        assignments = [
            Assignment(p.guest_id, p.round_number, p.table_number, p.event_id)
            for p in store.previews_for(event.id)
        ]

    if args.output_csv:
        args.output_csv.write_text(format_assignments_csv(assignments, guests) + "\n", encoding="utf-8")
        print(f"Wrote {len(assignments)} assignments to {args.output_csv}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
