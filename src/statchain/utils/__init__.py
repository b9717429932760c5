"""Utility functions for sample handling.

Internal helpers for normalising samples and sizing array storage.
"""

from statchain.utils.arrays import _as_sample, _element_dtype, _extreme, _readonly, _sample_shape

__all__ = ["_as_sample", "_element_dtype", "_extreme", "_readonly", "_sample_shape"]
