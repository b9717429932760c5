"""Command line entry point for statchain.

Usage::

    statchain resolve STAT [STAT ...]
    statchain describe [--tier {core,moments,all}]
    statchain compute [VALUES ...] [--stat STAT ...] [--tier TIER] \\
        [--weights W [W ...]] [--config CONFIG.toml] [--n-jobs N] [--partitions P]

``compute`` reads whitespace-separated numbers from standard input when no
values are given on the command line.
"""

from __future__ import annotations

import argparse
import logging
import sys

import pandas as pd

from statchain.accumulators.resolver import dependency_graph, required_passes, resolve_dependencies
from statchain.interfaces.config import add_cli_args, load_config
from statchain.interfaces.runner import run_accumulation
from statchain.interfaces.utils import _parse_log_level
from statchain.metrics import STATISTIC_TIERS, registered_statistics

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subparser per command."""
    parser = argparse.ArgumentParser(
        prog="statchain",
        description="Compose streaming statistics and evaluate them over numeric samples.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Show the dependency closure of statistics.")
    resolve.add_argument("statistics", nargs="+", metavar="STAT", help="Statistic names.")
    resolve.add_argument("--log-level", dest="log_level", help="Logging verbosity (e.g., INFO, DEBUG).")

    describe = subparsers.add_parser("describe", help="List the available statistics.")
    describe.add_argument(
        "--tier",
        choices=sorted(STATISTIC_TIERS),
        help="Only list statistics from this tier.",
    )
    describe.add_argument("--log-level", dest="log_level", help="Logging verbosity (e.g., INFO, DEBUG).")

    compute = subparsers.add_parser("compute", help="Compute statistics over numbers.")
    compute.add_argument("values", nargs="*", type=float, help="Samples; read from stdin when omitted.")
    compute.add_argument(
        "--weights",
        nargs="+",
        type=float,
        help="Per-sample weights, one per value.",
    )
    add_cli_args(compute)
    return parser


def _run_resolve(args: argparse.Namespace) -> int:
    resolved = resolve_dependencies(args.statistics)
    table = pd.DataFrame(
        {
            "statistic": [s.name for s in resolved],
            "depends_on": [", ".join(s.dependencies) for s in resolved],
        }
    )
    print(table.to_string(index=False))
    print(f"passes required: {required_passes(resolved)}")
    return 0


def _run_describe(args: argparse.Namespace) -> int:
    statistics = STATISTIC_TIERS[args.tier] if args.tier else registered_statistics()
    graph = dependency_graph()
    table = pd.DataFrame(
        {
            "statistic": [s.name for s in statistics],
            "passes": [s.layer.passes for s in statistics],
            "depends_on": [", ".join(graph[s.name]) for s in statistics],
            "description": [s.description for s in statistics],
        }
    )
    print(table.to_string(index=False))
    return 0


def _read_stdin_values() -> list[float]:
    return [float(token) for token in sys.stdin.read().split()]


def _run_compute(args: argparse.Namespace) -> int:
    config = load_config(args)
    logging.getLogger().setLevel(config.log_level)
    values = args.values or _read_stdin_values()
    if not values:
        logger.error("No values to accumulate")
        return 1
    chain = run_accumulation(values, config, weights=args.weights)
    table = pd.DataFrame(
        {
            "statistic": list(config.statistics),
            "value": [chain.get(name) for name in config.statistics],
        }
    )
    print(table.to_string(index=False))
    return 0


_COMMANDS = {
    "resolve": _run_resolve,
    "describe": _run_describe,
    "compute": _run_compute,
}


def main(argv: list[str] | None = None) -> int:
    """Entry point for the statchain CLI."""
    argv = list(argv) if argv is not None else sys.argv[1:]

    # --- No arguments: print help and exit cleanly ---
    parser = _build_parser()
    if not argv:
        parser.print_help()
        return 1

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=_parse_log_level(args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return _COMMANDS[args.command](args)
    except Exception:
        logger.exception("statchain %s failed", args.command)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
