from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Any

import numpy as np
import pandas as pd

from statchain.accumulators.chain import AccumulatorChain, build_chain
from statchain.accumulators.resolver import StatisticLike, _as_names
from statchain.errors import AccessError

logger = logging.getLogger(__name__)


class RegionNotFoundError(AccessError):
    """Raised when a label has no accumulator."""

    def __init__(self, label: int):
        """Initialize the error."""
        self.label = label
        super().__init__(f"No samples have been accumulated for region {label}.")


class RegionAccumulator:
    """One independent accumulator chain per region label.

    Values are grouped by an integer label array of matching shape. Samples
    whose label equals ``ignore_label`` are skipped, mirroring the background
    label of an atlas. Every label seen gets its own chain, copied from a
    single prototype so that all chains share the same composition and can
    be merged across partitions.
    """

    def __init__(
        self,
        statistics: StatisticLike | Iterable[StatisticLike],
        *,
        ignore_label: int | None = 0,
        dynamic: bool = False,
        active: StatisticLike | Iterable[StatisticLike] | None = None,
        labels: Iterable[int] | None = None,
    ) -> None:
        """
        Initialize a region accumulator

        Parameters
        ----------
        statistics : StatisticLike | Iterable[StatisticLike]
            Statistics to compute for every region.
        ignore_label : int | None, optional
            Label whose samples are skipped, by default 0. ``None`` keeps all labels.
        dynamic : bool, optional
            Use dynamic chains, by default False
        active : StatisticLike | Iterable[StatisticLike] | None, optional
            Statistics active from the start when ``dynamic`` is set; defaults
            to ``statistics``.
        labels : Iterable[int] | None, optional
            Labels to create (empty) chains for up front, by default None
        """
        self._requested = _as_names(statistics)
        self.ignore_label = None if ignore_label is None else int(ignore_label)
        self._prototype = build_chain(self._requested, dynamic=dynamic, active=active)
        self._chains: dict[int, AccumulatorChain] = {}
        for label in labels or ():
            self._chain_for(int(label))

    @property
    def statistics(self) -> tuple[str, ...]:
        """Names of the requested statistics."""
        return self._requested

    @property
    def regions(self) -> tuple[int, ...]:
        """Sorted labels that own a chain."""
        return tuple(sorted(self._chains))

    def __len__(self) -> int:
        return len(self._chains)

    def __contains__(self, label: object) -> bool:
        return label in self._chains

    def _chain_for(self, label: int) -> AccumulatorChain:
        chain = self._chains.get(label)
        if chain is None:
            chain = self._prototype.copy()
            self._chains[label] = chain
        return chain

    def chain(self, label: int) -> AccumulatorChain:
        """Return the chain of a region."""
        try:
            return self._chains[int(label)]
        except KeyError:
            raise RegionNotFoundError(label) from None

    def passes_required(self) -> int:
        return self._prototype.passes_required()

    def _grouped(
        self,
        labels: Any,
        values: Any,
        weights: Any | None,
    ) -> Iterator[tuple[int, np.ndarray, np.ndarray | None]]:
        """Yield ``(label, samples, weights)`` for every non-ignored label present.

        ``values`` must have the shape of ``labels`` followed by an optional
        per-sample shape (e.g. a trailing channel axis for vector samples).
        """
        label_data = np.asarray(labels)
        value_data = np.asarray(values)
        if label_data.dtype.kind not in "iub":
            raise ValueError(f"Labels must be integers, got dtype {label_data.dtype}.")
        if value_data.shape[: label_data.ndim] != label_data.shape:
            raise ValueError(
                f"Values of shape {value_data.shape} do not match labels of shape {label_data.shape}.",
            )
        flat_labels = label_data.reshape(-1)
        flat_values = value_data.reshape(flat_labels.size, *value_data.shape[label_data.ndim :])
        flat_weights = None
        if weights is not None:
            weight_data = np.asarray(weights, dtype=np.float64)
            if weight_data.shape != label_data.shape:
                raise ValueError(
                    f"Weights of shape {weight_data.shape} do not match labels of shape {label_data.shape}.",
                )
            flat_weights = weight_data.reshape(-1)

        keep = np.ones(flat_labels.size, dtype=bool)
        if self.ignore_label is not None:
            keep = flat_labels != self.ignore_label
        for label in np.unique(flat_labels[keep]):
            selected = keep & (flat_labels == label)
            yield (
                int(label),
                flat_values[selected],
                None if flat_weights is None else flat_weights[selected],
            )

    def update(self, labels: Any, values: Any, weights: Any | None = None) -> None:
        """Feed labelled samples to their regions' chains (first pass)."""
        for label, samples, sample_weights in self._grouped(labels, values, weights):
            self._chain_for(label).update_many(samples, sample_weights)

    def update_pass2(self, labels: Any, values: Any, weights: Any | None = None) -> None:
        """Feed labelled samples to their regions' chains (second pass)."""
        for label, samples, sample_weights in self._grouped(labels, values, weights):
            self._chain_for(label).update_many(samples, sample_weights, pass_number=2)

    def accumulate(self, labels: Any, values: Any, weights: Any | None = None) -> RegionAccumulator:
        """Run every pass needed over the labelled samples and return ``self``."""
        self.update(labels, values, weights)
        if self.passes_required() > 1:
            self.update_pass2(labels, values, weights)
        logger.debug("Accumulated %d regions", len(self._chains))
        return self

    def merge(self, other: RegionAccumulator) -> RegionAccumulator:
        """Merge another region accumulator label by label.

        Labels only present in ``other`` receive a copy of its chain.
        """
        for label, chain in other._chains.items():
            if label in self._chains:
                self._chains[label].merge(chain)
            else:
                self._chains[label] = chain.copy()
        return self

    def __iadd__(self, other: RegionAccumulator) -> RegionAccumulator:
        return self.merge(other)

    def reset(self) -> None:
        """Drop every region's chain."""
        self._chains.clear()

    def get(self, label: int, statistic: StatisticLike) -> float | np.ndarray:
        return self.chain(label).get(statistic)

    def to_frame(self, statistics: Iterable[StatisticLike] | None = None) -> pd.DataFrame:
        """Tabulate the statistics of every region.

        Parameters
        ----------
        statistics : Iterable[StatisticLike] | None, optional
            Statistics to include, by default the requested ones.

        Returns
        -------
        pd.DataFrame
            One row per region, sorted by label, with a ``label`` column
            followed by one column per statistic. Array-valued statistics are
            stored as nested lists.
        """
        names = self._requested if statistics is None else _as_names(statistics)
        rows: list[dict[str, Any]] = []
        for label in self.regions:
            chain = self._chains[label]
            row: dict[str, Any] = {"label": label}
            for name in names:
                value = chain.get(name)
                row[name] = value if isinstance(value, float) else value.tolist()
            rows.append(row)
        return pd.DataFrame(rows, columns=["label", *names])
