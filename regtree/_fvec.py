# regtree/_fvec.py
import numpy as np

from ._utils import DTYPE, row_entries


class FVec:
    """Dense feature vector that can be filled from a sparse row.

    The buffer is meant to be reused across a batch: ``fill`` a row, run the
    tree, then ``drop`` the same row. Both touch only the entries present in
    the row, so a cycle costs O(nnz) whatever the capacity. Indices beyond the
    capacity are ignored.

    An entry is a ``(value, missing)`` pair; after ``init`` every entry is
    missing.
    """

    __slots__ = ('_values', '_missing')

    def __init__(self, size=0):
        self._values = None
        self._missing = None
        self.init(size)

    def init(self, size):
        """Resize to ``size`` entries and mark all of them missing."""
        if size < 0:
            raise ValueError("size must be non-negative, got %d" % size)
        self._values = np.full(size, np.nan, dtype=DTYPE)
        self._missing = np.ones(size, dtype=np.bool_)

    def fill(self, row):
        """Fill the vector with the entries of a sparse row."""
        indices, values = self._in_range(row)
        self._values[indices] = values
        self._missing[indices] = False

    def drop(self, row):
        """Drop the trace of ``fill``; must be called with the same row."""
        indices, _ = self._in_range(row)
        self._values[indices] = np.nan
        self._missing[indices] = True

    def _in_range(self, row):
        indices, values = row_entries(row)
        mask = (indices >= 0) & (indices < self._values.shape[0])
        if not mask.all():
            indices = indices[mask]
            values = values[mask]
        return indices, values

    @property
    def size(self):
        return self._values.shape[0]

    def __len__(self):
        return self._values.shape[0]

    def fvalue(self, i):
        """Value of the i-th feature; NaN if it is missing."""
        return float(self._values[i])

    def is_missing(self, i):
        return bool(self._missing[i])

    def __repr__(self):
        present = np.flatnonzero(~self._missing)
        return f"FVec(size={self.size}, present={present.shape[0]})"
