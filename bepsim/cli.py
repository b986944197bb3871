"""Command line entry point: `bepsim INPUT [-o DIR] [-f FORMAT ...]`."""

import argparse
import logging
import signal
import sys
import threading
from dataclasses import replace
from typing import Optional, Sequence

from bepsim.config_loader import load_config
from bepsim.errors import (
    ConvergenceError,
    DataAlignmentError,
    InternalInvariantError,
    ValidationError,
)
from bepsim.results.aggregator import ResultsAggregator
from bepsim.results.output import WRITERS, write_outputs
from bepsim.sim.factory import SimulatorFactory

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INPUT_ERROR = 3
EXIT_RUNTIME_ERROR = 4
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bepsim",
        description="Building energy performance simulation",
    )
    parser.add_argument("input", help="YAML configuration file")
    parser.add_argument(
        "-o",
        "--output-dir",
        default=None,
        help="Directory for result files (default: from the configuration)",
    )
    parser.add_argument(
        "-f",
        "--format",
        dest="formats",
        action="append",
        default=None,
        help=f"Output format, may be repeated (known: {', '.join(sorted(WRITERS))})",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Treat a timestep that does not converge as a fatal error",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.input)
        output = config.output
        if args.output_dir is not None:
            output = replace(output, directory=args.output_dir)
        if args.formats:
            unknown = [f for f in args.formats if f not in WRITERS]
            if unknown:
                logger.error("Unknown output format(s): %s", ", ".join(unknown))
                return EXIT_INPUT_ERROR
            output = replace(output, formats=list(args.formats))
        if args.strict:
            config = replace(config, solver=replace(config.solver, strict=True))
        simulator = SimulatorFactory.create_simulator(config)
    except (ValidationError, DataAlignmentError) as e:
        logger.error("%s", e)
        return EXIT_INPUT_ERROR
    except (OSError, KeyError, ValueError) as e:
        logger.error("Could not load input: %s", e)
        return EXIT_INPUT_ERROR

    aggregator = ResultsAggregator(simulator.graph)
    cancel = threading.Event()
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: cancel.set())
    try:
        outcome = simulator.run(aggregator=aggregator, cancel_event=cancel)
    except (InternalInvariantError, ConvergenceError) as e:
        logger.error("Simulation failed: %s", e)
        return EXIT_RUNTIME_ERROR
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    try:
        write_outputs(aggregator, output.directory, output.formats)
    except OSError as e:
        logger.error("Could not write results to %s: %s", output.directory, e)
        return EXIT_RUNTIME_ERROR
    summary = aggregator.totals
    logger.info(
        "Simulated %d timesteps: %.1f kWh delivered, %.1f kWh unmet, cost %.2f",
        summary.steps,
        summary.space_heating_delivered_kwh,
        summary.unmet_demand_kwh,
        summary.total_cost,
    )
    if outcome.cancelled:
        logger.warning(
            "Run cancelled after %d of %d timesteps; results cover the completed steps",
            outcome.steps_completed,
            outcome.total_steps,
        )
        return EXIT_CANCELLED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
