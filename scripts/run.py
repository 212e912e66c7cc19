#!/usr/bin/env python3
"""
Parcel Simulator v1 - Main Entry Point

Run a parcel network simulation from one or more input workbooks.

Usage:
    python scripts/run.py [--input FILE [FILE ...]] [--output OUTPUT_FILE]
                          [--ticks N] [--seed SEED] [--workers N]

Later input files override settings from earlier ones, so a base workbook
can be combined with a small scenario workbook:
    python scripts/run.py -i data/base.xlsx data/peak.xlsx --ticks 48
"""
import argparse
import dataclasses
import logging
import signal
import sys
import threading
import time
from pathlib import Path

import pandas as pd

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from parcel_sim.config import DEFAULT_INPUT_FILE, DEFAULT_OUTPUT_FILE
from parcel_sim.errors import InvalidConfiguration, StorageUnavailable
from parcel_sim.io_loader import InputLoader
from parcel_sim.orchestrator import TickOrchestrator
from parcel_sim.reporting import build_all_reports
from parcel_sim.storage import MemoryStore
from parcel_sim.utils import log_level_for_verbosity, setup_logging
from parcel_sim.validators import validate_config
from parcel_sim.write_outputs import write_outputs


def main():
    parser = argparse.ArgumentParser(
        description="Parcel Simulator v1 - land/air parcel network simulation"
    )
    parser.add_argument(
        "--input", "-i",
        nargs="+",
        default=[DEFAULT_INPUT_FILE],
        help=f"Input Excel file(s); later files override earlier settings (default: {DEFAULT_INPUT_FILE})"
    )
    parser.add_argument(
        "--output", "-o",
        default=DEFAULT_OUTPUT_FILE,
        help=f"Output Excel file (default: {DEFAULT_OUTPUT_FILE})"
    )
    parser.add_argument(
        "--ticks",
        type=int,
        default=None,
        help="Maximum number of ticks to run (default: until max_delivered is reached)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed, overrides the settings sheet"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker threads per tick, overrides the settings sheet"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    logger = setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    cancel = threading.Event()
    signal.signal(signal.SIGINT, lambda signum, frame: cancel.set())

    start_time = time.time()
    logger.info("=" * 60)
    logger.info("Parcel Simulator v1 - Starting")
    logger.info("=" * 60)

    try:
        # Step 1: Load inputs
        logger.info("Step 1: Loading inputs...")
        loader = InputLoader(args.input)
        data = loader.load_all()

        config = data["config"]
        overrides = {}
        if args.seed is not None:
            overrides["seed"] = args.seed
        if args.workers is not None:
            overrides["workers"] = args.workers
        if overrides:
            config = dataclasses.replace(config, **overrides)

        if not args.verbose:
            logger = setup_logging(log_level_for_verbosity(config.verbose))

        # Step 2: Validate inputs
        logger.info("Step 2: Validating config...")
        validate_config(config, data["locations"], max_ticks=args.ticks)

        # Step 3: Run simulation
        logger.info("Step 3: Running simulation...")
        with MemoryStore(data["locations"], start_time=config.start_time) as store:
            orchestrator = TickOrchestrator(store, config)
            tick_reports = orchestrator.run(max_ticks=args.ticks, cancel=cancel)

            # Step 4: Build reports
            logger.info("Step 4: Building reports...")
            reports = build_all_reports(store, tick_reports)

        # Step 5: Write outputs
        logger.info("Step 5: Writing outputs...")
        write_outputs(reports, args.output)

        elapsed = time.time() - start_time
        logger.info("=" * 60)
        logger.info(f"Parcel Simulator v1 - Complete ({elapsed:.1f}s)")
        logger.info(f"Output written to: {args.output}")
        logger.info("=" * 60)

        for _, row in reports["summary"].iterrows():
            logger.info(f"  Method {row['method']}:")
            logger.info(f"    Packages: {row['total_packages']:,.0f}")
            logger.info(f"    Delivered: {row['pct_delivered']:.1f}%")
            if pd.notna(row["avg_transit_hours"]):
                logger.info(f"    Avg transit: {row['avg_transit_hours']:.1f} hours")

        return 0

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except InvalidConfiguration as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except StorageUnavailable as e:
        logger.error(f"Storage error: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Validation error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
