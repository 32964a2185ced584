"""Batch entry point: history CSV in, interval and lifetime tables out.

Example:
    python -m gpu_lifetimes.cli history.csv \
        --service-slots service_nodes.csv \
        --intervals-out intervals.csv \
        --lifetimes-out lifetimes.csv
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from gpu_lifetimes.config import PipelineConfig, settings
from gpu_lifetimes.domain.errors import ReconciliationError
from gpu_lifetimes.pipeline.runner import reconcile_rows
from gpu_lifetimes.store.tables import (
    read_history_csv,
    read_service_slots_csv,
    write_interval_table,
    write_lifetime_table,
)

logger = logging.getLogger("gpu_lifetimes.cli")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Reconcile GPU inventory history into per-unit lifetimes.")
    ap.add_argument("history", help="History CSV (unit/slot/insert/remove columns)")
    ap.add_argument(
        "--service-slots",
        default=settings.service_slots_path,
        help="CSV of non-GPU service slot addresses (column slot_id or first column)",
    )
    ap.add_argument("--intervals-out", default=None, help="Write the per-interval table here")
    ap.add_argument("--lifetimes-out", default="lifetimes.csv", help="Write the per-unit lifetime table here")
    ap.add_argument("--null-marker", default=settings.null_marker, help="Text written for missing values")
    ap.add_argument("--log-level", default=settings.log_level)
    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )

    try:
        service_slots = read_service_slots_csv(args.service_slots) if args.service_slots else frozenset()
        rows = read_history_csv(args.history)
        result = reconcile_rows(rows, service_slots, PipelineConfig.from_settings(settings))
    except OSError as exc:
        logger.error("Cannot read history: %s", exc)
        return 2
    except ReconciliationError as exc:
        logger.error("%s", exc)
        return 2

    try:
        write_lifetime_table(args.lifetimes_out, result.lifetimes, args.null_marker)
        if args.intervals_out:
            write_interval_table(args.intervals_out, result.intervals, args.null_marker)
    except OSError as exc:
        logger.error("Cannot write output: %s", exc)
        return 2

    print(json.dumps(result.diagnostics.summary(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
