from __future__ import annotations

import argparse
import dataclasses
import sys
from typing import List, Optional

import yaml

from coffee.core import (
    EquilibriumProblem,
    LoggerSink,
    NullSink,
    OptimizerConfig,
    TrustRegionOptimizer,
)
from coffee.core.errors import CoffeeError, NumericalFailure
from coffee.evaluation.reporter import results_message
from coffee.utils.io_utils import atomic_write_text, read_inputs, save_json
from coffee.utils.logging_utils import get_logger, set_level

CFE_EXTENSIONS = (".cfe", ".ocx", ".txt", ".csv", ".tsv")
CON_EXTENSIONS = (".con", ".txt", ".csv", ".tsv")
LOG_EXTENSIONS = (".txt", ".log")


def _with_extension(allowed):
    def check(value: str) -> str:
        if not value.endswith(allowed):
            raise argparse.ArgumentTypeError(f"File must be one of: {', '.join(allowed)}")
        return value
    return check


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coffee",
        description="Equilibrium polymer concentrations from compositions, free energies and monomer concentrations.",
    )
    parser.add_argument("cfe", type=_with_extension(CFE_EXTENSIONS),
                        help="Compositions and free energies (.cfe, .ocx, .txt, .csv, .tsv).")
    parser.add_argument("con", type=_with_extension(CON_EXTENSIONS),
                        help="Initial monomer concentrations (.con, .txt, .csv, .tsv).")
    parser.add_argument("-l", "--log", type=_with_extension(LOG_EXTENSIONS), default=None,
                        help="Write the log, including the results, here instead of stdout.")
    parser.add_argument("-o", "--output", type=_with_extension(LOG_EXTENSIONS), default=None,
                        help="Also write only the results to this file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output.")
    parser.add_argument("--config", default=None, help="YAML file with optimizer settings.")
    parser.add_argument("--json", default=None, help="Write the full results record as JSON.")
    parser.add_argument("--temp-celsius", type=float, default=None)
    parser.add_argument("--no-scalarity", action="store_true",
                        help="Free energies are already in kT units and concentrations dimensionless.")
    parser.add_argument("--max-iterations", type=int, default=None)
    parser.add_argument("--log-level", default="INFO")
    return parser


def build_config(args: argparse.Namespace) -> OptimizerConfig:
    config = OptimizerConfig.from_yaml(args.config) if args.config else OptimizerConfig()
    overrides = {"verbose": args.verbose or config.verbose, "use_terminal": args.log is None}
    if args.temp_celsius is not None:
        overrides["temp_celsius"] = args.temp_celsius
    if args.no_scalarity:
        overrides["scalarity"] = False
    if args.max_iterations is not None:
        overrides["max_iterations"] = args.max_iterations
    return dataclasses.replace(config, **overrides)


def _write_log(path: str, messages: List[str], results_text: str) -> None:
    atomic_write_text(path, "".join(messages) + results_text + "\n")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = get_logger("coffee.cli", level=args.log_level, stream=sys.stdout)
    set_level(logger, args.log_level)

    try:
        config = build_config(args)
        composition, energies, x0 = read_inputs(args.cfe, args.con)
        problem = EquilibriumProblem.from_free_energies(composition, energies, x0, config)
    except (OSError, yaml.YAMLError, CoffeeError) as exc:
        logger.error("Error reading inputs: %s", exc)
        return 1

    if config.use_terminal:
        sink = LoggerSink(logger)
    else:
        sink = NullSink()

    try:
        results = TrustRegionOptimizer(problem, config, sink).optimize()
    except NumericalFailure as exc:
        logger.error("Optimization failed: %s", exc)
        if args.log and exc.results is not None:
            _write_log(args.log, exc.results.log_messages, "")
        return 2

    text = results_message(results)
    if args.log:
        _write_log(args.log, results.log_messages, text)
    else:
        print(text)
    if args.output:
        atomic_write_text(args.output, text + "\n")
    if args.json:
        save_json(results.to_dict(), args.json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
