# regtree/_utils.py
import warnings
from collections.abc import Mapping

import numpy as np
from scipy.sparse import issparse, csr_matrix

# =============================================================================
# Constants
# =============================================================================

TREE_LEAF = -1
NO_PARENT = -1

# Split word of a deleted node
DELETED_NODE_MARKER = 0xFFFFFFFF

# High bit of the parent / split words
_HIGH_BIT = 1 << 31
_LOW_MASK = _HIGH_BIT - 1
_WORD_MASK = 0xFFFFFFFF

INT32_MAX = int(np.iinfo(np.int32).max)

DTYPE = np.float32
DOUBLE = np.float64


def as_float32(value):
    """Round a Python scalar to the nearest float32, returned as a float."""
    return float(DTYPE(value))


# =============================================================================
# Sparse rows
# =============================================================================

def row_entries(row):
    """Return ``(indices, values)`` arrays for a single sparse row.

    Parameters
    ----------
    row : sparse matrix, mapping, pair of arrays or iterable of pairs
        A scipy sparse matrix with a single row, a ``{index: value}`` mapping,
        an ``(indices, values)`` tuple of equally sized ndarrays, or an
        iterable of ``(index, value)`` pairs. Tuples of plain sequences are
        read as pairs.
    """
    if issparse(row):
        if row.shape[0] != 1:
            raise ValueError(
                "Expected a sparse matrix with a single row, got shape %s"
                % (row.shape,))
        row = csr_matrix(row)
        return (np.asarray(row.indices, dtype=np.intp),
                np.asarray(row.data, dtype=DTYPE))

    if isinstance(row, Mapping):
        indices = np.fromiter(row.keys(), dtype=np.intp, count=len(row))
        values = np.fromiter(row.values(), dtype=DTYPE, count=len(row))
        return indices, values

    if (isinstance(row, tuple) and len(row) == 2
            and isinstance(row[0], np.ndarray)):
        indices = np.asarray(row[0], dtype=np.intp)
        values = np.asarray(row[1], dtype=DTYPE)
        if indices.shape != values.shape:
            raise ValueError(
                "indices and values must have the same shape, got %s and %s"
                % (indices.shape, values.shape))
        return indices, values

    pairs = list(row)
    if not pairs:
        return np.empty(0, dtype=np.intp), np.empty(0, dtype=DTYPE)
    indices, values = zip(*pairs)
    return np.asarray(indices, dtype=np.intp), np.asarray(values, dtype=DTYPE)


# =============================================================================
# Batch input
# =============================================================================

def check_input(X, n_features):
    """Check input dtype, layout and format for batch prediction.

    Dense input is converted to a C-contiguous float32 2-D array in which NaN
    marks a missing value. Sparse input is converted to CSR; entries that are
    not stored are missing.
    """
    if issparse(X):
        X = csr_matrix(X)
        if X.data.dtype != DTYPE:
            X = X.astype(DTYPE)
        X.sort_indices()
    else:
        X = np.asarray(X)
        if X.ndim == 1:
            X = X.reshape(1, -1)
        if X.ndim != 2:
            raise ValueError("X should be a 2-d array, got %d dimensions" % X.ndim)
        X = np.ascontiguousarray(X, dtype=DTYPE)

    if X.shape[1] > n_features:
        warnings.warn(
            "X has %d columns but the tree was declared with num_feature=%d; "
            "the extra columns are ignored" % (X.shape[1], n_features),
            UserWarning)

    return X


def iter_rows(X):
    """Yield ``(indices, values)`` for every row of a checked batch."""
    if issparse(X):
        indptr = X.indptr
        for i in range(X.shape[0]):
            start, end = indptr[i], indptr[i + 1]
            yield X.indices[start:end], X.data[start:end]
    else:
        for row in X:
            indices = np.flatnonzero(~np.isnan(row))
            yield indices, row[indices]
