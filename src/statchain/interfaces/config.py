"""Configuration loading for accumulation workflows.

Settings are read from an optional TOML file and overridden by command-line
arguments. A configuration file looks like::

    statistics = ["Mean", "Variance", "Skewness"]
    tier = "core"
    dynamic = false
    ignore_label = 0
    n_jobs = 4
    n_partitions = 8
    log_level = "INFO"
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for older environments
    import tomli as tomllib  # type: ignore[import]

from statchain.interfaces.models import AccumulationConfig
from statchain.interfaces.utils import _as_list, _parse_log_level, parse_statistics

LOGGER = logging.getLogger(__name__)


def add_cli_args(parser: argparse.ArgumentParser) -> None:
    """Add the configuration arguments shared by the CLI subcommands.

    Parameters
    ----------
    parser
        The argument parser to add arguments to.
    """
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a TOML configuration file.",
    )
    parser.add_argument(
        "--stat",
        dest="statistics",
        action="append",
        metavar="STAT",
        help="Statistic to compute; may be repeated (e.g. --stat Mean --stat Skewness).",
    )
    parser.add_argument(
        "--tier",
        help="Named statistics tier to compute ('core', 'moments' or 'all').",
    )
    parser.add_argument(
        "--dynamic",
        action="store_true",
        default=None,
        help="Build dynamic chains with runtime activation.",
    )
    parser.add_argument(
        "--n-jobs",
        type=int,
        dest="n_jobs",
        help="Number of worker threads accumulating partitions.",
    )
    parser.add_argument(
        "--partitions",
        type=int,
        dest="n_partitions",
        help="Number of contiguous data partitions to accumulate and merge. Default: one per job.",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        help="Logging verbosity (e.g., INFO, DEBUG).",
    )


def read_config_file(path: Path | None) -> dict[str, Any]:
    """Return the parsed contents of a TOML file, or an empty mapping for ``None``."""
    if path is None:
        return {}
    with Path(path).open("rb") as f:
        data = tomllib.load(f)
    LOGGER.debug("Loaded configuration from %s", path)
    return data


def load_config(args: argparse.Namespace) -> AccumulationConfig:
    """Parse a TOML configuration file and override with CLI arguments.

    Parameters
    ----------
    args
        Parsed CLI arguments. Missing attributes are treated as unset.

    Returns
    -------
    AccumulationConfig
        A fully initialised configuration object.
    """
    data = read_config_file(getattr(args, "config", None))

    statistics = getattr(args, "statistics", None) or _as_list(data.get("statistics"))
    tier = getattr(args, "tier", None) or data.get("tier")
    dynamic = getattr(args, "dynamic", None)
    if dynamic is None:
        dynamic = bool(data.get("dynamic", False))
    ignore_label = data.get("ignore_label", 0)
    n_jobs = getattr(args, "n_jobs", None) or int(data.get("n_jobs", 1))
    n_partitions = getattr(args, "n_partitions", None) or data.get("n_partitions")
    log_level = _parse_log_level(getattr(args, "log_level", None) or data.get("log_level"))

    return AccumulationConfig(
        statistics=parse_statistics(statistics, tier),
        dynamic=dynamic,
        ignore_label=None if ignore_label is None else int(ignore_label),
        n_jobs=max(1, int(n_jobs)),
        n_partitions=None if n_partitions is None else int(n_partitions),
        log_level=log_level,
    )
